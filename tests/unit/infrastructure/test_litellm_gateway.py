"""
Unit tests for LiteLLMGateway.

Tests cover:
- Configuration loading and model aliases
- Parameter selection per model
- Completion with text and tool calls
- Retry logic
- invoke() error mapping
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from planforce.core.domain.errors import InferenceGatewayError, MalformedActionError
from planforce.core.domain.models import PromptContext
from planforce.infrastructure.llm.litellm_gateway import LiteLLMGateway


@pytest.fixture
def mock_config(tmp_path):
    """Create temporary config file."""
    config_content = """
default_model: "main"
models:
  main: "gpt-4.1"
  fast: "gpt-4.1-mini"
model_params:
  gpt-4.1:
    temperature: 0.2
    max_tokens: 2000
default_params:
  temperature: 0.7
  max_tokens: 1000
retry_policy:
  max_attempts: 3
  backoff_multiplier: 2
  timeout: 30
  retry_on_errors:
    - "RateLimitError"
providers:
  openai:
    api_key_env: "OPENAI_API_KEY"
logging:
  log_token_usage: true
"""
    config_file = tmp_path / "llm_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return str(config_file)


def make_response(content=None, tool_calls=None, usage=None):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].message.tool_calls = tool_calls
    response.usage = usage or {"total_tokens": 12, "prompt_tokens": 8, "completion_tokens": 4}
    return response


def make_tool_call(call_id, name, arguments):
    tool_call = MagicMock()
    tool_call.id = call_id
    tool_call.function.name = name
    tool_call.function.arguments = arguments
    return tool_call


class TestConfiguration:
    def test_init_loads_config(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        assert gateway.default_model == "main"
        assert gateway.models["fast"] == "gpt-4.1-mini"
        assert gateway.retry_policy.max_attempts == 3
        assert gateway.retry_policy.retry_on_errors == ["RateLimitError"]

    def test_missing_config_raises(self):
        with pytest.raises(FileNotFoundError):
            LiteLLMGateway(config_path="nonexistent.yaml")

    def test_empty_config_raises(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="empty or invalid"):
            LiteLLMGateway(config_path=str(config_file))

    def test_config_without_models_raises(self, tmp_path):
        config_file = tmp_path / "no_models.yaml"
        config_file.write_text('default_model: "main"\n', encoding="utf-8")
        with pytest.raises(ValueError, match="at least one model"):
            LiteLLMGateway(config_path=str(config_file))

    def test_resolve_model_aliases(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        assert gateway._resolve_model(None) == "gpt-4.1"
        assert gateway._resolve_model("fast") == "gpt-4.1-mini"
        assert gateway._resolve_model("gpt-4o") == "gpt-4o"

    def test_model_parameters(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        assert gateway._get_model_parameters("gpt-4.1") == {"temperature": 0.2, "max_tokens": 2000}
        assert gateway._get_model_parameters("gpt-4.1-2025") == {"temperature": 0.2, "max_tokens": 2000}
        assert gateway._get_model_parameters("claude-3") == {"temperature": 0.7, "max_tokens": 1000}


@pytest.mark.asyncio
class TestComplete:
    async def test_text_completion(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response("Hi")) as mock_call:
            result = await gateway.complete(messages=[{"role": "user", "content": "Hello"}], model="fast")

        assert result["success"] is True
        assert result["content"] == "Hi"
        assert result["tool_calls"] is None
        assert result["usage"]["total_tokens"] == 12
        assert mock_call.await_args.kwargs["model"] == "gpt-4.1-mini"
        assert "tools" not in mock_call.await_args.kwargs

    async def test_tools_and_tool_choice_are_forwarded(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        tools = [{"type": "function", "function": {"name": "terminate", "parameters": {}}}]

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response("x")) as mock_call:
            await gateway.complete(messages=[], tools=tools, tool_choice="required", unknown_param=1)

        kwargs = mock_call.await_args.kwargs
        assert kwargs["tools"] == tools
        assert kwargs["tool_choice"] == "required"
        assert kwargs["timeout"] == 30
        assert "unknown_param" not in kwargs

    async def test_tool_calls_are_normalized(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        response = make_response(tool_calls=[make_tool_call("call_9", "terminate", '{"reason": "done"}')])

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=response):
            result = await gateway.complete(messages=[])

        assert result["tool_calls"] == [
            {"id": "call_9", "type": "function", "function": {"name": "terminate", "arguments": '{"reason": "done"}'}}
        ]

    async def test_retry_on_rate_limit(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        call_count = 0

        async def mock_acompletion(*args, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise Exception("RateLimitError: Too many requests")
            return make_response("Success")

        with patch("litellm.acompletion", side_effect=mock_acompletion), patch(
            "asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            result = await gateway.complete(messages=[])

        assert result["success"] is True
        assert call_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    async def test_no_retry_on_other_errors(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        mock_call = AsyncMock(side_effect=ValueError("Invalid input"))

        with patch("litellm.acompletion", mock_call):
            result = await gateway.complete(messages=[])

        assert result["success"] is False
        assert result["error_type"] == "ValueError"
        assert mock_call.await_count == 1


@pytest.mark.asyncio
class TestInvoke:
    async def test_text_response(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        context = PromptContext(messages=[{"role": "user", "content": "hi"}], tool_choice="none")

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=make_response("Hello!")) as mock_call:
            response = await gateway.invoke(context)

        assert response.text == "Hello!"
        assert response.actions == []
        assert "tool_choice" not in mock_call.await_args.kwargs

    async def test_action_response(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        tools = [{"type": "function", "function": {"name": "select_tasks", "parameters": {}}}]
        response = make_response(
            tool_calls=[make_tool_call("call_1", "select_tasks", '{"plan_id": "p1", "task_indexes": [0, 2]}')]
        )

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=response):
            result = await gateway.invoke(PromptContext(messages=[], available_actions=tools, tool_choice="required"))

        assert result.action.name == "select_tasks"
        assert result.action.arguments == {"plan_id": "p1", "task_indexes": [0, 2]}
        assert result.action.call_id == "call_1"

    async def test_invalid_json_arguments_are_malformed(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        response = make_response(tool_calls=[make_tool_call("call_1", "update_plan", "{not json")])

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=response):
            with pytest.raises(MalformedActionError):
                await gateway.invoke(PromptContext(messages=[]))

    async def test_non_object_arguments_are_malformed(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)
        response = make_response(tool_calls=[make_tool_call("call_1", "update_plan", "[1, 2]")])

        with patch("litellm.acompletion", new_callable=AsyncMock, return_value=response):
            with pytest.raises(MalformedActionError):
                await gateway.invoke(PromptContext(messages=[]))

    async def test_failure_raises_gateway_error(self, mock_config):
        gateway = LiteLLMGateway(config_path=mock_config)

        with patch("litellm.acompletion", new_callable=AsyncMock, side_effect=ValueError("bad request")):
            with pytest.raises(InferenceGatewayError) as exc_info:
                await gateway.invoke(PromptContext(messages=[]))

        assert exc_info.value.error_type == "ValueError"
