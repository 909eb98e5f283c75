"""Shared fixtures for the planforce test suite."""

from unittest.mock import AsyncMock

import pytest

from planforce.core.domain.models import ActionCall, GatewayResponse
from planforce.core.domain.plan import Plan, Task, TaskStatus
from planforce.core.domain.session import SessionState
from planforce.core.registry import CapabilityRegistry
from planforce.core.tools.planner_tools import planner_tools


def _action_response(name: str, call_id: str = "call_1", **arguments) -> GatewayResponse:
    return GatewayResponse(actions=[ActionCall(name=name, arguments=arguments, call_id=call_id)])


@pytest.fixture
def action_response():
    """Build a gateway response requesting a single action."""
    return _action_response


@pytest.fixture
def text_response():
    """Build a gateway response with free text only."""
    return lambda text: GatewayResponse(text=text)


@pytest.fixture
def gateway():
    """Mock InferenceGatewayProtocol."""
    mock = AsyncMock()
    mock.invoke = AsyncMock()
    return mock


@pytest.fixture
def registry():
    """Registry with the four planner capabilities and one executor capability."""
    reg = CapabilityRegistry()
    for tool in planner_tools():
        reg.register_tool(tool)
    reg.register(
        name="get_quote",
        input_schema={
            "type": "object",
            "properties": {"from_token": {"type": "string"}, "to_token": {"type": "string"}},
            "required": ["from_token", "to_token"],
        },
        handler=lambda from_token, to_token: {"success": True, "output": f"1 {from_token} = 600 {to_token}"},
        description="Fetch a swap quote",
    )
    return reg


@pytest.fixture
def state():
    return SessionState(input="swap 1 BNB to USDT")


@pytest.fixture
def active_plan(state):
    """Session with one active plan of three pending tasks."""
    plan = Plan(
        title="Swap BNB to USDT",
        tasks=[
            Task(title="Fetch quote", index=0),
            Task(title="Build transaction", index=1),
            Task(title="Report result", index=2),
        ],
    )
    state.add_plan(plan)
    return plan


@pytest.fixture
def failed_plan(state):
    """Session whose active plan has a task over the default retry ceiling."""
    plan = Plan(
        title="Bridge USDT",
        tasks=[
            Task(title="Fetch route", index=0, status=TaskStatus.COMPLETE),
            Task(title="Bridge funds", index=1, status=TaskStatus.FAILED, retry_count=4),
        ],
    )
    state.add_plan(plan)
    return plan
