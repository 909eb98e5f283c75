from unittest.mock import AsyncMock, MagicMock

import pytest

from planforce.core.tools.ask_user_tool import AskUserTool


@pytest.mark.asyncio
async def test_ask_user_without_channel_returns_question_payload():
    tool = AskUserTool()
    result = await tool.execute(question="Which wallet?", missing=["wallet"])
    assert result == {"success": True, "question": "Which wallet?", "missing": ["wallet"], "answer": None}


@pytest.mark.asyncio
async def test_ask_user_with_channel_returns_answer():
    channel = MagicMock()
    channel.ask = AsyncMock(return_value="0xabc")
    tool = AskUserTool(channel)

    result = await tool.execute(question="Which wallet?")

    channel.ask.assert_awaited_once_with("Which wallet?")
    assert result["answer"] == "0xabc"
    assert result["output"] == "0xabc"


def test_ask_user_schema_requires_question():
    assert AskUserTool().parameters_schema["required"] == ["question"]
