"""
Plan Reconciler

Merges the executor's outcome records for the tasks that just ran back into
the active plan through the ``update_plan`` capability.
"""

from typing import Any

import structlog

from planforce.core.domain.errors import MalformedActionError, PlanforceError
from planforce.core.domain.models import ActionCall, PromptContext, TaskOutcome
from planforce.core.domain.plan import Plan
from planforce.core.domain.session import SessionState
from planforce.core.interfaces.llm import InferenceGatewayProtocol
from planforce.core.prompts.planner_prompts import PlannerPrompts
from planforce.core.registry import CapabilityRegistry
from planforce.core.tools.planner_tools import UPDATE_PLAN

# Outcome channel used by executors for bookkeeping messages without task status
EXECUTOR_CHANNEL = "executor"


def is_bookkeeping(outcome: TaskOutcome) -> bool:
    return outcome.tool_name == EXECUTOR_CHANNEL and outcome.task_index is None


def filter_outcomes(outcomes: list[TaskOutcome]) -> list[TaskOutcome]:
    """Drop bookkeeping records whenever any task-level record exists."""
    task_records = [o for o in outcomes if not is_bookkeeping(o)]
    return task_records if task_records else list(outcomes)


def merge_update_calls(calls: list[ActionCall]) -> dict[str, Any]:
    """
    Merge several ``update_plan`` calls into a single invocation.

    The plan id of the first call wins; task lists are concatenated in order.
    """
    tasks: list[Any] = []
    for call in calls:
        call_tasks = call.arguments.get("tasks") or []
        if not isinstance(call_tasks, list):
            raise MalformedActionError(UPDATE_PLAN, "'tasks' must be a list", call.arguments)
        tasks.extend(call_tasks)
    return {"plan_id": calls[0].arguments.get("plan_id"), "tasks": tasks}


class PlanReconciler:
    allowed_actions = (UPDATE_PLAN,)

    def __init__(
        self,
        gateway: InferenceGatewayProtocol,
        registry: CapabilityRegistry,
        prompts: PlannerPrompts | None = None,
        model: str | None = None,
    ):
        self.gateway = gateway
        self.registry = registry
        self.prompts = prompts or PlannerPrompts()
        self.model = model
        self.logger = structlog.get_logger().bind(component="plan_reconciler")

    def build_context(self, state: SessionState, outcomes: list[TaskOutcome]) -> PromptContext:
        messages = [
            {"role": "system", "content": self.prompts.update_plan},
            {"role": "user", "content": f"The current plans: {state.plans_json()}"},
        ]
        messages.extend({"role": "user", "content": o.to_message()} for o in outcomes)
        messages.append(
            {
                "role": "user",
                "content": (
                    f"Update current plan: Active plan: {state.active_plan_id}, "
                    f"Selected task indexes: {state.selected_task_indexes}"
                ),
            }
        )
        return PromptContext(
            messages=messages,
            available_actions=self.registry.to_openai_tools(self.allowed_actions),
            tool_choice="required",
            model=self.model,
        )

    async def run(self, state: SessionState) -> Plan | None:
        """
        Apply ``state.executor_outcomes`` to the active plan.

        Returns:
            The updated plan, or None when the gateway answered in text
            (stored unchanged in ``state.answer``).

        Raises:
            PlanforceError: If there is no active plan to reconcile
            MalformedActionError: If the proposed update is invalid
        """
        if state.active_plan() is None:
            raise PlanforceError("No active plan to reconcile")

        outcomes = filter_outcomes(state.executor_outcomes)
        self.logger.info(
            "reconcile_started",
            session_id=state.session_id,
            plan_id=state.active_plan_id,
            outcomes=len(outcomes),
            dropped=len(state.executor_outcomes) - len(outcomes),
        )

        response = await self.gateway.invoke(self.build_context(state, outcomes))

        calls = response.actions_named(UPDATE_PLAN)
        if not calls:
            self.logger.info("update_plan_fallback", session_id=state.session_id, has_text=bool(response.text))
            state.answer = response.text or ""
            state.executor_outcomes = []
            return None

        args = merge_update_calls(calls)
        result = await self.registry.invoke(UPDATE_PLAN, args, session=state)
        state.executor_outcomes = []
        return state.get_plan(result.get("plan", {}).get("id"))
