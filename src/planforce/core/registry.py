"""
Capability Registry

Lookup from capability name to an executable Tool plus its input schema.
Registration happens once at startup; the orchestrator freezes the registry
before its first turn, after which it is read-only and may be shared by
concurrent requests.

Every invocation goes through ``invoke``: argument validation, the review
gate for sensitive capabilities, execution and tool-execution events for
listeners (UI progress, audit logs).
"""

from __future__ import annotations

import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

import structlog

from planforce.core.domain.errors import (
    CapabilityError,
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    MalformedActionError,
    RegistryFrozenError,
)
from planforce.core.domain.session import SessionState
from planforce.core.review import ReviewGate
from planforce.core.tools.base import AgentNodeType, FunctionTool, Tool


class ToolExecutionState(str, Enum):
    STARTED = "started"
    IN_PROCESS = "in_process"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ToolExecutionEvent:
    tool_name: str
    state: ToolExecutionState
    args: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


ToolExecutionListener = Callable[[ToolExecutionEvent], None] | Callable[[ToolExecutionEvent], Awaitable[None]]


class CapabilityRegistry:
    def __init__(self, review_gate: ReviewGate | None = None):
        self._tools: dict[str, Tool] = {}
        self._listeners: list[ToolExecutionListener] = []
        self._frozen = False
        self.review_gate = review_gate
        self.logger = structlog.get_logger().bind(component="capability_registry")

    # ---------------- Registration ----------------

    def register(
        self,
        name: str,
        input_schema: dict[str, Any],
        handler: Callable[..., Any],
        description: str = "",
        node_types: tuple[AgentNodeType, ...] = (AgentNodeType.EXECUTOR,),
        requires_approval: bool = False,
    ) -> Tool:
        """
        Register a plain callable (sync or async) as a capability.

        Args:
            name: Unique capability name
            input_schema: JSON schema of the handler's keyword arguments
            handler: Callable invoked with the validated arguments
            description: Text shown to the model
            node_types: Nodes the capability is exposed to
            requires_approval: Whether invocations pass the review gate

        Returns:
            The registered Tool

        Raises:
            DuplicateCapabilityError: If ``name`` is already registered
            RegistryFrozenError: If orchestration has already started
        """
        tool = FunctionTool(
            name=name,
            input_schema=input_schema,
            handler=handler,
            description=description,
            node_types=node_types,
            requires_approval=requires_approval,
        )
        return self.register_tool(tool)

    def register_tool(self, tool: Tool) -> Tool:
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{tool.name}': registry is frozen")
        if tool.name in self._tools:
            raise DuplicateCapabilityError(f"Capability '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        self.logger.debug("capability_registered", name=tool.name, node_types=[n.value for n in tool.node_types])
        return tool

    def freeze(self) -> None:
        if not self._frozen:
            self._frozen = True
            self.logger.info("registry_frozen", capabilities=sorted(self._tools))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_listener(self, callback: ToolExecutionListener) -> None:
        self._listeners.append(callback)

    # ---------------- Lookup ----------------

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise CapabilityNotFoundError(f"No capability registered under '{name}'")
        return tool

    def list(self, node_type: AgentNodeType | None = None) -> list[dict[str, str]]:
        return [
            {"name": tool.name, "description": tool.description}
            for tool in self._tools.values()
            if node_type is None or node_type in tool.node_types
        ]

    def describe(self, node_type: AgentNodeType | None = None) -> str:
        """Render capabilities as a bullet list for prompts."""
        entries = self.list(node_type)
        if not entries:
            return "(no capabilities available)"
        return "\n".join(f"- {e['name']}: {e['description']}" for e in entries)

    def to_openai_tools(self, names: list[str] | tuple[str, ...]) -> list[dict[str, Any]]:
        """Function-calling schemas for a static allow-list of capabilities."""
        return [self.require(name).function_tool_schema for name in names]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    # ---------------- Invocation ----------------

    async def invoke(
        self,
        name: str,
        args: dict[str, Any] | None = None,
        session: SessionState | None = None,
    ) -> dict[str, Any]:
        """
        Validate, review and execute a capability.

        A denied review returns an unsuccessful result instead of raising.

        Args:
            name: Capability name
            args: Arguments chosen by the model
            session: Session state for capabilities that operate on it

        Returns:
            Result dict with at least a ``success`` key

        Raises:
            CapabilityNotFoundError: If ``name`` is not registered
            MalformedActionError: If the arguments are invalid
            CapabilityError: If the handler raised
        """
        tool = self.require(name)
        args = dict(args or {})

        valid, error = tool.validate_params(**args)
        if not valid:
            raise MalformedActionError(name, error or "invalid arguments", args)

        await self._emit(ToolExecutionEvent(tool_name=name, state=ToolExecutionState.STARTED, args=args))

        if tool.requires_approval:
            if self.review_gate is None:
                self.logger.warning("review_gate_missing", tool=name)
            elif not await self.review_gate.review(tool, args):
                result = {"success": False, "error": "approval_denied", "reason": "approval_denied"}
                self.logger.info("capability_denied", tool=name)
                await self._emit(
                    ToolExecutionEvent(
                        tool_name=name, state=ToolExecutionState.FAILED, args=args, result=result, error="approval_denied"
                    )
                )
                return result

        await self._emit(ToolExecutionEvent(tool_name=name, state=ToolExecutionState.IN_PROCESS, args=args))
        self.logger.info("tool_execute", tool=name, args_keys=list(args.keys()))

        try:
            if tool.binds_session:
                if session is None:
                    raise CapabilityError(name, "capability operates on a session but none was given")
                result = await tool.execute(session=session, **args)
            else:
                result = await tool.execute(**args)
        except (MalformedActionError, CapabilityError) as e:
            self.logger.error("tool_exception", tool=name, error=str(e))
            await self._emit(
                ToolExecutionEvent(tool_name=name, state=ToolExecutionState.FAILED, args=args, error=str(e))
            )
            raise
        except Exception as e:
            self.logger.error("tool_exception", tool=name, error=str(e), error_type=type(e).__name__)
            await self._emit(
                ToolExecutionEvent(tool_name=name, state=ToolExecutionState.FAILED, args=args, error=str(e))
            )
            raise CapabilityError(name, str(e), cause=e) from e

        if not isinstance(result, dict):
            result = {"success": True, "output": result}
        result.setdefault("success", True)

        state = ToolExecutionState.COMPLETED if result["success"] else ToolExecutionState.FAILED
        self.logger.info("tool_complete", tool=name, success=result["success"])
        await self._emit(
            ToolExecutionEvent(tool_name=name, state=state, args=args, result=result, error=result.get("error"))
        )
        return result

    async def _emit(self, event: ToolExecutionEvent) -> None:
        for listener in self._listeners:
            outcome = listener(event)
            if inspect.isawaitable(outcome):
                await outcome
