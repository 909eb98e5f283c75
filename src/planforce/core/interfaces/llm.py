"""
Inference gateway protocol.

The orchestration core only depends on this contract: given a prompt
context with the available actions, return free text or a request to
invoke one of those actions. Timeouts and provider retries belong to the
implementation, which surfaces failures as InferenceGatewayError.
"""

from typing import Protocol

from planforce.core.domain.models import GatewayResponse, PromptContext


class InferenceGatewayProtocol(Protocol):
    async def invoke(self, context: PromptContext) -> GatewayResponse:
        """
        Run one inference call.

        Args:
            context: Messages, available actions and call options

        Returns:
            GatewayResponse with either text or action requests

        Raises:
            InferenceGatewayError: If no response could be produced
            MalformedActionError: If the action arguments cannot be decoded
        """
        ...
