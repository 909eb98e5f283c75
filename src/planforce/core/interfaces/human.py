"""
Human-in-the-loop channel.

Review and clarification are modelled as a callback boundary: the core
awaits the channel and resumes with the returned data. Nothing in the
plan state changes while a request is outstanding.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    DENY = "deny"
    TRUST = "trust"  # approve this and every later request of the session


@dataclass
class ReviewRequest:
    action_name: str
    action_args: dict[str, Any] = field(default_factory=dict)
    description: str = ""


class HumanChannelProtocol(Protocol):
    async def review(self, request: ReviewRequest) -> ReviewDecision:
        """Ask a human to approve a sensitive capability invocation."""
        ...

    async def ask(self, question: str) -> str:
        """Ask a human for missing information."""
        ...
