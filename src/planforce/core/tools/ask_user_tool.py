# ============================================
# ASK USER TOOL (first-class)
# ============================================

from typing import Any

from planforce.core.interfaces.human import HumanChannelProtocol
from planforce.core.tools.base import Tool


class AskUserTool(Tool):
    """Model-invoked prompt to request missing info from a human.

    With a human channel the question is answered inline and the answer is
    returned to the executor. Without one, the structured question payload is
    returned so the caller can surface it.
    """

    def __init__(self, channel: HumanChannelProtocol | None = None):
        self.channel = channel

    @property
    def name(self) -> str:
        return "ask_user"

    @property
    def description(self) -> str:
        return "Ask the user for missing info to proceed. Returns the user's answer when available."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "question": {"type": "string", "description": "One clear question"},
                "missing": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["question"],
        }

    async def execute(self, question: str, missing: list[str] | None = None, **kwargs) -> dict[str, Any]:
        if self.channel is None:
            return {"success": True, "question": question, "missing": missing or [], "answer": None}
        answer = await self.channel.ask(question)
        return {"success": True, "question": question, "missing": missing or [], "answer": answer, "output": answer}
