"""
Plan Compiler

Turns the user's goal into a brand-new plan by letting the inference
gateway fill in the ``create_plan`` capability. The executor capabilities
are listed in the prompt for context only; this node never exposes anything
but ``create_plan``.
"""

import structlog

from planforce.core.domain.models import PromptContext
from planforce.core.domain.plan import Plan
from planforce.core.domain.session import SessionState
from planforce.core.interfaces.llm import InferenceGatewayProtocol
from planforce.core.prompts.planner_prompts import PlannerPrompts
from planforce.core.registry import CapabilityRegistry
from planforce.core.tools.base import AgentNodeType
from planforce.core.tools.planner_tools import CREATE_PLAN


class PlanCompiler:
    allowed_actions = (CREATE_PLAN,)

    def __init__(
        self,
        gateway: InferenceGatewayProtocol,
        registry: CapabilityRegistry,
        prompts: PlannerPrompts | None = None,
        model: str | None = None,
        history_window: int = 20,
    ):
        self.gateway = gateway
        self.registry = registry
        self.prompts = prompts or PlannerPrompts()
        self.model = model
        self.history_window = history_window
        self.logger = structlog.get_logger().bind(component="plan_compiler")

    def build_context(self, state: SessionState) -> PromptContext:
        capabilities = self.registry.describe(AgentNodeType.EXECUTOR)
        messages = [{"role": "system", "content": self.prompts.create_plan.replace("{capabilities}", capabilities)}]
        messages.extend(state.chat_history.get_last_n_messages(self.history_window))
        messages.append({"role": "user", "content": f"Plan to execute the user's request: {state.input}"})
        return PromptContext(
            messages=messages,
            available_actions=self.registry.to_openai_tools(self.allowed_actions),
            tool_choice="required",
            model=self.model,
        )

    async def run(self, state: SessionState) -> Plan | None:
        """
        Create a plan for ``state.input``.

        Returns:
            The new active plan, or None when the gateway answered in text.
            In that case the text is stored in ``state.answer`` unchanged.
        """
        response = await self.gateway.invoke(self.build_context(state))

        calls = response.actions_named(CREATE_PLAN)
        if not calls:
            self.logger.info("create_plan_fallback", session_id=state.session_id, has_text=bool(response.text))
            state.answer = response.text or ""
            return None

        await self.registry.invoke(CREATE_PLAN, calls[0].arguments, session=state)
        plan = state.active_plan()
        self.logger.info(
            "plan_compiled",
            session_id=state.session_id,
            plan_id=plan.id if plan else None,
            task_count=len(plan.tasks) if plan else 0,
        )
        return plan
