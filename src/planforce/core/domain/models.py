"""
Core Domain Models

Value objects exchanged between the orchestrator, the inference gateway and
the external executor: what goes into a gateway call, what comes back, what
the executor receives and what it reports.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ActionCall:
    """
    A structured action requested by the inference gateway.

    Attributes:
        name: Name of the capability the model chose
        arguments: Decoded arguments for the capability
        call_id: Provider tool-call id (used to correlate tool messages)
    """

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str | None = None


@dataclass
class GatewayResponse:
    """
    Response of one inference gateway call: free text or action requests.

    The core never interprets ``text`` beyond passing it through as a
    fallback answer.
    """

    text: str | None = None
    actions: list[ActionCall] = field(default_factory=list)
    usage: dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> ActionCall | None:
        """First requested action, if any."""
        return self.actions[0] if self.actions else None

    def actions_named(self, name: str) -> list[ActionCall]:
        return [a for a in self.actions if a.name == name]


@dataclass
class PromptContext:
    """
    Everything a node sends to the inference gateway for one call.

    Attributes:
        messages: Chat messages (role/content dicts)
        available_actions: Function-calling schemas the model may choose from
        tool_choice: "required", "auto" or "none"
        model: Model alias (resolved by the gateway)
        temperature: Sampling temperature
    """

    messages: list[dict[str, Any]]
    available_actions: list[dict[str, Any]] = field(default_factory=list)
    tool_choice: str = "auto"
    model: str | None = None
    temperature: float = 0.0


@dataclass
class TaskOutcome:
    """
    Outcome record reported by the external executor for one task.

    Records of the bookkeeping ``executor`` channel without a task index carry
    no task-status information and are filtered out by the reconciler when
    other records exist.
    """

    task_index: int | None
    tool_name: str
    content: Any = None
    success: bool = True
    error: str | None = None
    call_id: str | None = None

    def to_message(self) -> str:
        lines = [
            f"Response tool id: {self.call_id or '-'}",
            f"Tool name: {self.tool_name}",
            f"Task index: {self.task_index if self.task_index is not None else '-'}",
            f"Success: {self.success}",
        ]
        if self.error:
            lines.append(f"Error: {self.error}")
        if self.content is not None:
            lines.append(f"Content: {self.content}")
        return "\n".join(lines)


@dataclass
class ExecutorHandoff:
    """What the core returns when the selected tasks must be executed outside."""

    active_plan_id: str
    selected_task_indexes: list[int]
    executor_input: str


@dataclass
class TurnResult:
    """
    Result of one orchestrator turn.

    Attributes:
        status: "continue" (hand-off to the executor) or "answered"
        handoff: Executor hand-off when status is "continue"
        answer: Final answer when status is "answered"
        trace: Orchestrator states visited during the turn
        forced_termination: Whether the retry ceiling ended the plan
    """

    status: str
    handoff: ExecutorHandoff | None = None
    answer: str | None = None
    trace: list[str] = field(default_factory=list)
    forced_termination: bool = False


@dataclass
class RunResult:
    """Result of a complete multi-turn request driven by PlanningAgent."""

    session_id: str
    status: str
    answer: str
    turns: int
    plans: list[dict[str, Any]] = field(default_factory=list)
    outcomes: list[TaskOutcome] = field(default_factory=list)
