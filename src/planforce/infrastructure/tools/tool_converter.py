"""
Tool Converter - OpenAI function calling message format.

Builds the assistant/tool messages the executor appends to its message
history while running a native tool-calling loop.
"""

import json
from typing import Any

from planforce.core.domain.models import ActionCall


def assistant_tool_calls_to_message(actions: list[ActionCall]) -> dict[str, Any]:
    """
    Create an assistant message with tool calls for message history.

    The assistant's tool calls must precede the tool results in the
    history, otherwise the provider rejects the next request.
    """
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": action.call_id,
                "type": "function",
                "function": {
                    "name": action.name,
                    "arguments": json.dumps(action.arguments, ensure_ascii=False, default=str),
                },
            }
            for action in actions
        ],
    }


def tool_result_to_message(
    tool_call_id: str | None,
    tool_name: str,
    result: dict[str, Any],
    max_output_chars: int = 20000,
) -> dict[str, Any]:
    """
    Convert a tool execution result to an OpenAI tool message.

    Large outputs are truncated to ``max_output_chars`` per field.
    """
    truncated_result = _truncate_tool_result(result, max_output_chars)
    content = json.dumps(truncated_result, ensure_ascii=False, default=str)

    return {
        "role": "tool",
        "tool_call_id": tool_call_id,
        "name": tool_name,
        "content": content,
    }


def _truncate_tool_result(result: dict[str, Any], max_chars: int) -> dict[str, Any]:
    truncated = result.copy()

    # Fields that commonly contain large outputs
    large_fields = ["output", "result", "content", "data"]

    for field in large_fields:
        if field in truncated:
            value = truncated[field]
            if isinstance(value, str) and len(value) > max_chars:
                overflow = len(value) - max_chars
                truncated[field] = value[:max_chars] + f"\n\n[... TRUNCATED - {overflow} more chars ...]"
            elif isinstance(value, (list, dict)):
                value_str = json.dumps(value, ensure_ascii=False, default=str)
                if len(value_str) > max_chars:
                    overflow = len(value_str) - max_chars
                    truncated[field] = value_str[:max_chars] + f"\n\n[... TRUNCATED - {overflow} more chars ...]"

    return truncated
