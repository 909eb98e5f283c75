"""
Tests for the review gate.

Covers:
- AUTO_APPROVE / AUTO_DENY policies
- PROMPT policy with approve, deny and trust decisions
- approval cache and audit history
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from planforce.core.interfaces.human import ReviewDecision, ReviewRequest
from planforce.core.review import ApprovalPolicy, ReviewGate
from planforce.core.tools.base import FunctionTool


@pytest.fixture
def sensitive_tool():
    return FunctionTool(
        name="send_tx",
        input_schema={"type": "object", "properties": {"to": {"type": "string"}}},
        handler=lambda to: "0xabc",
        description="Broadcast a signed transaction",
        requires_approval=True,
    )


@pytest.fixture
def other_tool():
    return FunctionTool(name="bridge", input_schema={}, handler=lambda: "ok", requires_approval=True)


@pytest.fixture
def channel():
    mock = MagicMock()
    mock.review = AsyncMock(return_value=ReviewDecision.APPROVE)
    mock.ask = AsyncMock(return_value="yes")
    return mock


class TestPolicies:
    @pytest.mark.asyncio
    async def test_auto_approve(self, sensitive_tool, channel):
        gate = ReviewGate(ApprovalPolicy.AUTO_APPROVE, channel)
        assert await gate.review(sensitive_tool, {"to": "0x1"}) is True
        channel.review.assert_not_called()
        assert gate.history[-1]["decision"] == "auto_approved"

    @pytest.mark.asyncio
    async def test_auto_deny(self, sensitive_tool, channel):
        gate = ReviewGate(ApprovalPolicy.AUTO_DENY, channel)
        assert await gate.review(sensitive_tool, {"to": "0x1"}) is False
        channel.review.assert_not_called()
        assert gate.history[-1]["decision"] == "auto_denied"

    @pytest.mark.asyncio
    async def test_prompt_without_channel_denies(self, sensitive_tool):
        gate = ReviewGate(ApprovalPolicy.PROMPT)
        assert await gate.review(sensitive_tool, {}) is False
        assert gate.history[-1]["reason"] == "no_channel"


class TestPromptPolicy:
    @pytest.mark.asyncio
    async def test_channel_receives_request(self, sensitive_tool, channel):
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        await gate.review(sensitive_tool, {"to": "0x1"})

        request = channel.review.await_args.args[0]
        assert isinstance(request, ReviewRequest)
        assert request.action_name == "send_tx"
        assert request.action_args == {"to": "0x1"}
        assert "Broadcast a signed transaction" in request.description

    @pytest.mark.asyncio
    async def test_approval_is_cached_per_tool(self, sensitive_tool, other_tool, channel):
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        assert await gate.review(sensitive_tool, {}) is True
        assert await gate.review(sensitive_tool, {}) is True
        assert channel.review.await_count == 1

        await gate.review(other_tool, {})
        assert channel.review.await_count == 2

    @pytest.mark.asyncio
    async def test_deny(self, sensitive_tool, channel):
        channel.review.return_value = ReviewDecision.DENY
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        assert await gate.review(sensitive_tool, {}) is False
        assert "send_tx" not in gate.approval_cache
        assert gate.history[-1]["decision"] == "denied"

    @pytest.mark.asyncio
    async def test_trust_approves_everything_afterwards(self, sensitive_tool, other_tool, channel):
        channel.review.return_value = ReviewDecision.TRUST
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        assert await gate.review(sensitive_tool, {}) is True
        assert gate.trust_mode is True
        assert await gate.review(other_tool, {}) is True
        assert channel.review.await_count == 1

    @pytest.mark.asyncio
    async def test_plain_string_answers_are_accepted(self, sensitive_tool, channel):
        channel.review.return_value = "approve"
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        assert await gate.review(sensitive_tool, {}) is True

    @pytest.mark.asyncio
    async def test_unrecognised_answer_denies(self, sensitive_tool, channel):
        channel.review.return_value = "maybe"
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        assert await gate.review(sensitive_tool, {}) is False

    @pytest.mark.asyncio
    async def test_every_decision_is_audited(self, sensitive_tool, channel):
        gate = ReviewGate(ApprovalPolicy.PROMPT, channel)
        await gate.review(sensitive_tool, {})
        await gate.review(sensitive_tool, {})
        assert [r["decision"] for r in gate.history] == ["approved", "cached"]
        assert all("timestamp" in r for r in gate.history)
