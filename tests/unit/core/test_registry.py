"""
Unit Tests for CapabilityRegistry

Registration rules, lookup, schema export and invocation (validation,
review gate, events, error wrapping).
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from planforce.core.domain.errors import (
    CapabilityError,
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    MalformedActionError,
    RegistryFrozenError,
)
from planforce.core.registry import CapabilityRegistry, ToolExecutionState
from planforce.core.review import ApprovalPolicy, ReviewGate
from planforce.core.tools.base import AgentNodeType


def echo(text: str) -> str:
    return text.upper()


async def async_echo(text: str) -> dict:
    return {"success": True, "output": text}


def explode(**kwargs):
    raise RuntimeError("rpc down")


ECHO_SCHEMA = {"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]}


class TestRegistration:
    def test_register_and_get(self):
        registry = CapabilityRegistry()
        registry.register("echo", ECHO_SCHEMA, echo, description="Echo text")

        tool = registry.get("echo")
        assert tool is not None
        assert tool.parameters_schema == ECHO_SCHEMA
        assert registry.get("missing") is None
        assert "echo" in registry
        assert len(registry) == 1

    def test_duplicate_name_is_rejected(self):
        registry = CapabilityRegistry()
        registry.register("echo", ECHO_SCHEMA, echo)
        with pytest.raises(DuplicateCapabilityError):
            registry.register("echo", ECHO_SCHEMA, async_echo)

    def test_registration_after_freeze_is_rejected(self):
        registry = CapabilityRegistry()
        registry.freeze()
        assert registry.frozen is True
        with pytest.raises(RegistryFrozenError):
            registry.register("echo", ECHO_SCHEMA, echo)

    def test_require_raises_for_unknown_name(self):
        with pytest.raises(CapabilityNotFoundError):
            CapabilityRegistry().require("missing")


class TestListing:
    def test_list_filters_by_node_type(self, registry):
        planner = [e["name"] for e in registry.list(AgentNodeType.PLANNER)]
        executor = [e["name"] for e in registry.list(AgentNodeType.EXECUTOR)]

        assert planner == ["create_plan", "update_plan", "select_tasks", "terminate"]
        assert executor == ["get_quote"]
        assert len(registry.list()) == 5

    def test_describe_renders_bullets(self, registry):
        assert registry.describe(AgentNodeType.EXECUTOR) == "- get_quote: Fetch a swap quote"
        assert CapabilityRegistry().describe() == "(no capabilities available)"

    def test_to_openai_tools_for_allow_list(self, registry):
        tools = registry.to_openai_tools(["select_tasks", "terminate"])
        assert [t["function"]["name"] for t in tools] == ["select_tasks", "terminate"]
        assert all(t["type"] == "function" for t in tools)

    def test_to_openai_tools_unknown_name(self, registry):
        with pytest.raises(CapabilityNotFoundError):
            registry.to_openai_tools(["swap"])


class TestInvoke:
    @pytest.mark.asyncio
    async def test_sync_handler_result_is_wrapped(self):
        registry = CapabilityRegistry()
        registry.register("echo", ECHO_SCHEMA, echo)
        result = await registry.invoke("echo", {"text": "hi"})
        assert result == {"success": True, "output": "HI"}

    @pytest.mark.asyncio
    async def test_async_handler_result_is_returned(self):
        registry = CapabilityRegistry()
        registry.register("echo", ECHO_SCHEMA, async_echo)
        assert await registry.invoke("echo", {"text": "hi"}) == {"success": True, "output": "hi"}

    @pytest.mark.asyncio
    async def test_missing_argument_is_malformed(self):
        registry = CapabilityRegistry()
        handler = MagicMock()
        registry.register("echo", ECHO_SCHEMA, handler)
        with pytest.raises(MalformedActionError):
            await registry.invoke("echo", {})
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_exception_is_wrapped(self):
        registry = CapabilityRegistry()
        registry.register("explode", {}, explode)
        with pytest.raises(CapabilityError) as exc_info:
            await registry.invoke("explode", {})
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.name == "explode"

    @pytest.mark.asyncio
    async def test_session_tool_requires_session(self, registry):
        with pytest.raises(CapabilityError):
            await registry.invoke("terminate", {"reason": "x"})

    @pytest.mark.asyncio
    async def test_events_are_emitted_in_order(self):
        registry = CapabilityRegistry()
        registry.register("echo", ECHO_SCHEMA, echo)
        sync_listener = MagicMock()
        async_listener = AsyncMock()
        registry.add_listener(sync_listener)
        registry.add_listener(async_listener)

        await registry.invoke("echo", {"text": "hi"})

        states = [call.args[0].state for call in sync_listener.call_args_list]
        assert states == [
            ToolExecutionState.STARTED,
            ToolExecutionState.IN_PROCESS,
            ToolExecutionState.COMPLETED,
        ]
        assert async_listener.await_count == 3

    @pytest.mark.asyncio
    async def test_failed_event_on_exception(self):
        registry = CapabilityRegistry()
        registry.register("explode", {}, explode)
        listener = MagicMock()
        registry.add_listener(listener)

        with pytest.raises(CapabilityError):
            await registry.invoke("explode", {})

        last = listener.call_args_list[-1].args[0]
        assert last.state == ToolExecutionState.FAILED
        assert "rpc down" in last.error


class TestReviewIntegration:
    @pytest.mark.asyncio
    async def test_denied_review_returns_unsuccessful_result(self):
        handler = MagicMock(return_value="sent")
        registry = CapabilityRegistry(review_gate=ReviewGate(ApprovalPolicy.AUTO_DENY))
        registry.register("send_tx", {}, handler, requires_approval=True)

        result = await registry.invoke("send_tx", {})

        assert result["success"] is False
        assert result["error"] == "approval_denied"
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_approved_review_executes(self):
        registry = CapabilityRegistry(review_gate=ReviewGate(ApprovalPolicy.AUTO_APPROVE))
        registry.register("send_tx", {}, lambda: "0xabc", requires_approval=True)
        assert await registry.invoke("send_tx", {}) == {"success": True, "output": "0xabc"}

    @pytest.mark.asyncio
    async def test_tools_without_approval_skip_gate(self):
        gate = MagicMock()
        gate.review = AsyncMock(return_value=False)
        registry = CapabilityRegistry(review_gate=gate)
        registry.register("echo", ECHO_SCHEMA, echo)

        await registry.invoke("echo", {"text": "x"})

        gate.review.assert_not_called()
