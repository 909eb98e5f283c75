# ============================================
# BASE TOOL INTERFACE
# ============================================

import inspect
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable


class AgentNodeType(str, Enum):
    """Which side of the agent a capability is exposed to."""

    PLANNER = "planner"
    EXECUTOR = "executor"


_RESERVED_PARAMS = ("self", "kwargs", "session")


class Tool(ABC):
    """Base class for all capabilities (action providers)."""

    # Planner tools operate on the session state and receive it on execute()
    binds_session: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    def node_types(self) -> tuple[AgentNodeType, ...]:
        return (AgentNodeType.EXECUTOR,)

    @property
    def requires_approval(self) -> bool:
        return False

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """Override to provide custom parameter schema for function calling"""
        return self._generate_schema_from_signature()

    def _generate_schema_from_signature(self) -> dict[str, Any]:
        """Auto-generate parameter schema from execute method signature"""
        sig = inspect.signature(self.execute)
        properties = {}
        required = []

        for param_name, param in sig.parameters.items():
            if param_name in _RESERVED_PARAMS or param.kind == inspect.Parameter.VAR_KEYWORD:
                continue

            param_type = "string"
            if param.annotation is int:
                param_type = "integer"
            elif param.annotation is bool:
                param_type = "boolean"
            elif param.annotation is float:
                param_type = "number"
            elif param.annotation in (dict, dict[str, Any]):
                param_type = "object"
            elif param.annotation is list:
                param_type = "array"

            properties[param_name] = {
                "type": param_type,
                "description": f"Parameter {param_name}",
            }
            if param.default is inspect.Parameter.empty:
                required.append(param_name)

        return {"type": "object", "properties": properties, "required": required}

    @property
    def function_tool_schema(self) -> dict[str, Any]:
        """Return full OpenAI function tool schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema,
            },
        }

    @abstractmethod
    async def execute(self, **kwargs) -> dict[str, Any]:
        pass

    def validate_params(self, **kwargs) -> tuple[bool, str | None]:
        """Validate parameters before execution"""
        required = self.parameters_schema.get("required", [])
        for param_name in required:
            if param_name not in kwargs:
                return False, f"Missing required parameter: {param_name}"
        return True, None

    def get_approval_preview(self, **kwargs) -> str:
        """Human-readable summary shown to a reviewer."""
        args = "\n".join(f"  {k}: {v}" for k, v in kwargs.items()) or "  (no arguments)"
        return f"Tool: {self.name}\nOperation: {self.description}\nParameters:\n{args}"


class FunctionTool(Tool):
    """Adapts a plain callable (sync or async) to the Tool interface."""

    def __init__(
        self,
        name: str,
        input_schema: dict[str, Any],
        handler: Callable[..., Any] | Callable[..., Awaitable[Any]],
        description: str = "",
        node_types: tuple[AgentNodeType, ...] = (AgentNodeType.EXECUTOR,),
        requires_approval: bool = False,
    ):
        self._name = name
        self._schema = input_schema or {"type": "object", "properties": {}, "required": []}
        self._handler = handler
        self._description = description or name
        self._node_types = tuple(node_types)
        self._requires_approval = requires_approval

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def node_types(self) -> tuple[AgentNodeType, ...]:
        return self._node_types

    @property
    def requires_approval(self) -> bool:
        return self._requires_approval

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return self._schema

    async def execute(self, **kwargs) -> dict[str, Any]:
        result = self._handler(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, dict):
            return result
        return {"success": True, "output": result}
