"""
LLM module for centralized functionality.

Contains:
- LiteLLMGateway: Centralized LLM interaction gateway
"""

from planforce.infrastructure.llm.litellm_gateway import LiteLLMGateway

__all__ = ["LiteLLMGateway"]
