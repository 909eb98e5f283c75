"""Domain models of the planner."""

from planforce.core.domain.errors import (
    CapabilityError,
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    InferenceGatewayError,
    InvalidTransitionError,
    MalformedActionError,
    PlanforceError,
    RegistryFrozenError,
)
from planforce.core.domain.models import (
    ActionCall,
    ExecutorHandoff,
    GatewayResponse,
    PromptContext,
    RunResult,
    TaskOutcome,
    TurnResult,
)
from planforce.core.domain.plan import Plan, PlanStatus, Task, TaskStatus, parse_task_status
from planforce.core.domain.session import ChatHistory, EndedBy, SessionState

__all__ = [
    "ActionCall",
    "CapabilityError",
    "CapabilityNotFoundError",
    "ChatHistory",
    "DuplicateCapabilityError",
    "EndedBy",
    "ExecutorHandoff",
    "GatewayResponse",
    "InferenceGatewayError",
    "InvalidTransitionError",
    "MalformedActionError",
    "Plan",
    "PlanStatus",
    "PlanforceError",
    "PromptContext",
    "RegistryFrozenError",
    "RunResult",
    "SessionState",
    "Task",
    "TaskOutcome",
    "TaskStatus",
    "TurnResult",
    "parse_task_status",
]
