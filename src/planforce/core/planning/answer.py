"""
Answer Synthesizer

Produces the final user-facing response once the orchestrator stops. No
retries here: a gateway failure is surfaced to the caller of the turn.
"""

import structlog

from planforce.core.domain.models import PromptContext
from planforce.core.domain.session import EndedBy, SessionState
from planforce.core.interfaces.llm import InferenceGatewayProtocol
from planforce.core.prompts.planner_prompts import PlannerPrompts


class AnswerSynthesizer:
    def __init__(
        self,
        gateway: InferenceGatewayProtocol,
        prompts: PlannerPrompts | None = None,
        model: str | None = None,
        history_window: int = 20,
    ):
        self.gateway = gateway
        self.prompts = prompts or PlannerPrompts()
        self.model = model
        self.history_window = history_window
        self.logger = structlog.get_logger().bind(component="answer_synthesizer")

    def build_context(self, state: SessionState) -> PromptContext:
        messages = [{"role": "system", "content": self.prompts.answer}]
        messages.extend(state.chat_history.get_last_n_messages(self.history_window))
        messages.append({"role": "user", "content": state.input})
        messages.append({"role": "user", "content": f"plans: {state.plans_json()}"})
        messages.append({"role": "system", "content": "You need to respond to the user after executing the plan."})
        return PromptContext(messages=messages, tool_choice="none", model=self.model)

    async def run(self, state: SessionState) -> str:
        """
        Produce the final answer, append it to chat history and set ``ended_by``.

        A direct answer produced earlier in the turn is used verbatim.
        """
        if state.answer:
            answer = state.answer
            self.logger.info("answer_passthrough", session_id=state.session_id)
        else:
            response = await self.gateway.invoke(self.build_context(state))
            answer = response.text or ""
            self.logger.info("answer_synthesized", session_id=state.session_id, length=len(answer))

        state.answer = answer
        state.chat_history.add_message(answer, "assistant")
        state.ended_by = EndedBy.PLANNER_ANSWER
        return answer
