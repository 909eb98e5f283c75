"""
Configuration management for the planner.
"""

import logging
from pathlib import Path

import structlog
import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from planforce.core.review import ApprovalPolicy

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class PlannerSettings(BaseSettings):
    """Planner configuration settings with environment variable support."""

    # Orchestration
    retry_ceiling: int = Field(default=3, ge=0, description="Failed retries a task may exceed before forced termination")
    max_turns: int = Field(default=20, ge=1, description="Maximum orchestrator turns per request")
    executor_max_steps: int = Field(default=8, ge=1, description="Tool-calling steps per task in the executor")
    chat_history_window: int = Field(default=20, ge=0, description="Chat messages sent to the model")

    # Gateway
    llm_config_path: str = Field(default="configs/llm_config.yaml", description="Path to the LLM gateway config")
    planner_model: str = Field(default="main", description="Model alias for the planner nodes")
    answer_model: str = Field(default="main", description="Model alias for the answer synthesizer")
    executor_model: str = Field(default="fast", description="Model alias for the task executor")

    # Human review
    approval_policy: ApprovalPolicy = Field(default=ApprovalPolicy.PROMPT, description="Review policy for sensitive capabilities")

    # Debug settings
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = {
        "env_file": ".env",
        "env_prefix": "PLANFORCE_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_file(cls, config_path: Path) -> "PlannerSettings":
        """Load settings from a YAML configuration file."""
        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog to filter below ``level``."""
    log_level = logging.getLevelName(level.upper())
    logging.basicConfig(level=log_level, format="%(message)s")
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
