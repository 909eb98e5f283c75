"""
Task Selector

Chooses which tasks of the active plan run next, or ends the plan. The
termination policy is checked first; when it trips, neither the gateway nor
any capability is called.
"""

from enum import Enum

import structlog

from planforce.core.domain.models import ActionCall, PromptContext
from planforce.core.domain.plan import PlanStatus
from planforce.core.domain.session import SessionState
from planforce.core.interfaces.llm import InferenceGatewayProtocol
from planforce.core.planning.termination import TerminationPolicy
from planforce.core.prompts.planner_prompts import PlannerPrompts
from planforce.core.registry import CapabilityRegistry
from planforce.core.tools.planner_tools import SELECT_TASKS, TERMINATE


class SelectionSignal(str, Enum):
    CONTINUE = "continue"    # tasks selected, hand off to the executor
    TERMINATE = "terminate"  # model called terminate
    FORCED = "forced"        # retry ceiling breached
    ANSWER = "answer"        # an answer is already available or the model replied in text


class TaskSelector:
    allowed_actions = (SELECT_TASKS, TERMINATE)

    def __init__(
        self,
        gateway: InferenceGatewayProtocol,
        registry: CapabilityRegistry,
        policy: TerminationPolicy | None = None,
        prompts: PlannerPrompts | None = None,
        model: str | None = None,
    ):
        self.gateway = gateway
        self.registry = registry
        self.policy = policy or TerminationPolicy()
        self.prompts = prompts or PlannerPrompts()
        self.model = model
        self.logger = structlog.get_logger().bind(component="task_selector")

    def build_context(self, state: SessionState) -> PromptContext:
        messages = [
            {"role": "system", "content": self.prompts.select_tasks},
            {
                "role": "user",
                "content": f"The current plan: {state.plans_json()}\nActive plan id: {state.active_plan_id}",
            },
        ]
        return PromptContext(
            messages=messages,
            available_actions=self.registry.to_openai_tools(self.allowed_actions),
            tool_choice="required",
            model=self.model,
        )

    async def run(self, state: SessionState) -> SelectionSignal:
        """
        Select the next tasks or signal termination.

        Side effects on CONTINUE: ``selected_task_indexes``, ``active_plan_id``
        and ``executor_input`` are set from the select_tasks call. On
        TERMINATE and FORCED the affected plan is marked complete.
        """
        breach = self.policy.find_breach(state.plans)
        if breach is not None:
            plan, task = breach
            plan.status = PlanStatus.COMPLETE
            state.forced_termination = True
            self.logger.warning(
                "termination_forced",
                session_id=state.session_id,
                plan_id=plan.id,
                task_index=task.index,
                retry_count=task.retry_count,
                retry_ceiling=self.policy.retry_ceiling,
            )
            return SelectionSignal.FORCED

        if state.answer is not None:
            # Compiler/reconciler already produced a direct answer this turn
            return SelectionSignal.ANSWER

        response = await self.gateway.invoke(self.build_context(state))
        action = self._first_allowed(response.actions)

        if action is None:
            self.logger.info("selection_text_response", session_id=state.session_id)
            if response.text:
                state.answer = response.text
            return SelectionSignal.ANSWER

        if action.name == SELECT_TASKS:
            result = await self.registry.invoke(SELECT_TASKS, action.arguments, session=state)
            state.selected_task_indexes = list(result["task_indexes"])
            state.active_plan_id = result["plan_id"]
            state.executor_input = result["output"]
            state.answer = None
            self.logger.info(
                "tasks_selected",
                session_id=state.session_id,
                plan_id=state.active_plan_id,
                task_indexes=state.selected_task_indexes,
            )
            return SelectionSignal.CONTINUE

        await self.registry.invoke(TERMINATE, action.arguments, session=state)
        plan = state.active_plan()
        if plan is not None:
            plan.status = PlanStatus.COMPLETE
        self.logger.info("plan_terminated", session_id=state.session_id, plan_id=state.active_plan_id)
        return SelectionSignal.TERMINATE

    def _first_allowed(self, actions: list[ActionCall]) -> ActionCall | None:
        for action in actions:
            if action.name in self.allowed_actions:
                return action
        return None
