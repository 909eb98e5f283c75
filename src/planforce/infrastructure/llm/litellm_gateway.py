"""
LiteLLM Inference Gateway

Centralized gateway for all LLM interactions of the planner and the
executor: YAML configuration with model aliases, per-model parameters,
retry with exponential backoff and a per-call timeout. ``complete`` keeps
the dict contract used throughout the codebase; ``invoke`` adapts it to the
orchestration core's text-or-action contract.
"""

import asyncio
import json
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import litellm
import structlog
import yaml

from planforce.core.domain.errors import InferenceGatewayError, MalformedActionError
from planforce.core.domain.models import ActionCall, GatewayResponse, PromptContext

_ALLOWED_PARAMS = ("temperature", "top_p", "max_tokens", "frequency_penalty", "presence_penalty")


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_attempts: int = 3
    backoff_multiplier: float = 2.0
    timeout: int = 30
    retry_on_errors: list[str] = field(default_factory=list)


class LiteLLMGateway:
    def __init__(self, config_path: str = "configs/llm_config.yaml"):
        """
        Initialize the gateway with configuration.

        Args:
            config_path: Path to YAML configuration file

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        self.logger = structlog.get_logger().bind(component="litellm_gateway")
        self._load_config(config_path)
        self._initialize_provider()

        self.logger.info(
            "llm_gateway_initialized",
            default_model=self.default_model,
            model_aliases=list(self.models.keys()),
        )

    def _load_config(self, config_path: str) -> None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"LLM config not found: {config_path}")

        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if config is None:
            raise ValueError(f"Config file is empty or invalid: {config_path}")

        self.default_model = config.get("default_model", "main")
        self.models = config.get("models", {})
        self.model_params = config.get("model_params", {})
        self.default_params = config.get("default_params", {})

        if not self.models:
            raise ValueError("Config must define at least one model in 'models' section")

        retry_config = config.get("retry_policy", {})
        self.retry_policy = RetryPolicy(
            max_attempts=retry_config.get("max_attempts", 3),
            backoff_multiplier=retry_config.get("backoff_multiplier", 2.0),
            timeout=retry_config.get("timeout", 30),
            retry_on_errors=retry_config.get("retry_on_errors", []),
        )

        self.logging_config = config.get("logging", {})
        self.provider_config = config.get("providers", {})

    def _initialize_provider(self) -> None:
        """Check that the provider API key is available in the environment."""
        openai_config = self.provider_config.get("openai", {})
        api_key_env = openai_config.get("api_key_env", "OPENAI_API_KEY")
        if not os.getenv(api_key_env):
            self.logger.warning(
                "openai_api_key_missing",
                env_var=api_key_env,
                hint="Set environment variable for API access",
            )
        self.logger.info("provider_selected", provider="openai")

    def _resolve_model(self, model_alias: str | None) -> str:
        """Resolve a model alias to the actual model name (unknown aliases pass through)."""
        if model_alias is None:
            model_alias = self.default_model
        resolved_model = self.models.get(model_alias, model_alias)
        self.logger.debug("model_resolved", model_alias=model_alias, resolved_model=resolved_model)
        return resolved_model

    def _get_model_parameters(self, model: str) -> dict[str, Any]:
        """
        Get parameters for specific model.

        Exact names win over family prefixes (e.g. "gpt-4" matches
        "gpt-4-turbo"); otherwise the defaults apply.
        """
        if model in self.model_params:
            return self.model_params[model].copy()

        for model_key, params in self.model_params.items():
            if model.startswith(model_key):
                return params.copy()

        return self.default_params.copy()

    async def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        **kwargs,
    ) -> dict[str, Any]:
        """
        Perform LLM completion with retry logic.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model alias or None (uses default)
            tools: Function-calling schemas (OpenAI format)
            tool_choice: "auto", "required" or "none"
            **kwargs: Additional parameters (temperature, max_tokens, etc.)

        Returns:
            Dict with:
            - success: bool
            - content: str | None (if successful)
            - tool_calls: list of OpenAI tool call dicts or None
            - usage: Dict with token counts
            - error: str (if failed)
        """
        actual_model = self._resolve_model(model)
        merged_params = {**self._get_model_parameters(actual_model), **kwargs}
        final_params = {k: v for k, v in merged_params.items() if k in _ALLOWED_PARAMS}
        if tools:
            final_params["tools"] = tools
            if tool_choice:
                final_params["tool_choice"] = tool_choice

        for attempt in range(self.retry_policy.max_attempts):
            try:
                start_time = time.time()

                self.logger.info(
                    "llm_completion_started",
                    model=actual_model,
                    attempt=attempt + 1,
                    message_count=len(messages),
                    tool_count=len(tools or []),
                )

                response = await litellm.acompletion(
                    model=actual_model,
                    messages=messages,
                    timeout=self.retry_policy.timeout,
                    **final_params,
                )

                message = response.choices[0].message
                usage = getattr(response, "usage", {})
                if isinstance(usage, dict):
                    token_stats = usage
                else:
                    token_stats = {
                        "total_tokens": getattr(usage, "total_tokens", 0),
                        "prompt_tokens": getattr(usage, "prompt_tokens", 0),
                        "completion_tokens": getattr(usage, "completion_tokens", 0),
                    }

                latency_ms = int((time.time() - start_time) * 1000)

                if self.logging_config.get("log_token_usage", True):
                    self.logger.info(
                        "llm_completion_success",
                        model=actual_model,
                        tokens=token_stats.get("total_tokens", 0),
                        latency_ms=latency_ms,
                    )

                return {
                    "success": True,
                    "content": message.content,
                    "tool_calls": _normalize_tool_calls(getattr(message, "tool_calls", None)),
                    "usage": token_stats,
                    "model": actual_model,
                    "latency_ms": latency_ms,
                }

            except Exception as e:
                error_type = type(e).__name__
                error_msg = str(e)

                should_retry = attempt < self.retry_policy.max_attempts - 1 and any(
                    err_type in error_type or err_type in error_msg
                    for err_type in self.retry_policy.retry_on_errors
                )

                if should_retry:
                    backoff_time = self.retry_policy.backoff_multiplier**attempt
                    self.logger.warning(
                        "llm_completion_retry",
                        model=actual_model,
                        error_type=error_type,
                        attempt=attempt + 1,
                        backoff_seconds=backoff_time,
                    )
                    await asyncio.sleep(backoff_time)
                else:
                    self.logger.error(
                        "llm_completion_failed",
                        model=actual_model,
                        error_type=error_type,
                        error=error_msg[:200],
                        attempts=attempt + 1,
                    )
                    return {
                        "success": False,
                        "error": error_msg,
                        "error_type": error_type,
                        "model": actual_model,
                    }

        return {
            "success": False,
            "error": "Max retries exceeded",
            "model": actual_model,
        }

    async def invoke(self, context: PromptContext) -> GatewayResponse:
        """
        Run one completion for a planner or executor node.

        Raises:
            InferenceGatewayError: If the completion failed after retries
            MalformedActionError: If tool-call arguments are not valid JSON
        """
        result = await self.complete(
            messages=context.messages,
            model=context.model,
            tools=context.available_actions or None,
            tool_choice=context.tool_choice if context.available_actions else None,
            temperature=context.temperature,
        )
        if not result.get("success"):
            raise InferenceGatewayError(result.get("error", "completion failed"), result.get("error_type"))

        actions = [_parse_tool_call(tc) for tc in result.get("tool_calls") or []]
        return GatewayResponse(text=result.get("content"), actions=actions, usage=result.get("usage", {}))


def _normalize_tool_calls(tool_calls: Any) -> list[dict[str, Any]] | None:
    """Convert provider tool call objects to plain OpenAI-format dicts."""
    if not tool_calls:
        return None
    normalized = []
    for tc in tool_calls:
        if isinstance(tc, dict):
            normalized.append(tc)
            continue
        normalized.append(
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.function.name, "arguments": tc.function.arguments},
            }
        )
    return normalized


def _parse_tool_call(tool_call: dict[str, Any]) -> ActionCall:
    function = tool_call.get("function", {})
    name = function.get("name", "")
    raw_args = function.get("arguments") or "{}"
    if isinstance(raw_args, dict):
        arguments = raw_args
    else:
        try:
            arguments = json.loads(raw_args)
        except json.JSONDecodeError as e:
            raise MalformedActionError(name, f"arguments are not valid JSON: {e}", raw_args) from e
    if not isinstance(arguments, dict):
        raise MalformedActionError(name, "arguments must be a JSON object", arguments)
    return ActionCall(name=name, arguments=arguments, call_id=tool_call.get("id"))
