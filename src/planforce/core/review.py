"""
Review Gate

Approval gate for capabilities flagged with ``requires_approval``. The
policy decides whether a human is asked at all; under PROMPT the gate
awaits the human channel, which suspends the turn until a decision
arrives. Every decision is recorded in ``history`` for auditing.
"""

from datetime import datetime
from enum import Enum
from typing import Any

import structlog

from planforce.core.interfaces.human import HumanChannelProtocol, ReviewDecision, ReviewRequest
from planforce.core.tools.base import Tool


class ApprovalPolicy(str, Enum):
    """Policy for handling approval requests for sensitive operations."""
    PROMPT = "prompt"              # Ask the human channel for each approval (default)
    AUTO_APPROVE = "auto_approve"  # Approve all automatically (logs warning)
    AUTO_DENY = "auto_deny"        # Deny all automatically (logs error)


class ReviewGate:
    def __init__(
        self,
        policy: ApprovalPolicy = ApprovalPolicy.PROMPT,
        channel: HumanChannelProtocol | None = None,
    ):
        self.policy = policy
        self.channel = channel
        self.trust_mode = False
        self.approval_cache: dict[str, bool] = {}
        self.history: list[dict[str, Any]] = []
        self.logger = structlog.get_logger().bind(component="review_gate")

    async def review(self, tool: Tool, args: dict[str, Any]) -> bool:
        """
        Decide whether ``tool`` may run with ``args``.

        Returns:
            True when approved, False when denied
        """
        if self.policy == ApprovalPolicy.AUTO_APPROVE:
            self.logger.warning("auto_approve_policy", tool=tool.name, parameters=args)
            self._record(tool.name, "auto_approved", policy="AUTO_APPROVE")
            return True

        if self.policy == ApprovalPolicy.AUTO_DENY:
            self.logger.error("auto_deny_policy", tool=tool.name, parameters=args)
            self._record(tool.name, "auto_denied", policy="AUTO_DENY")
            return False

        # PROMPT policy - check existing approvals first
        if self.trust_mode or self.approval_cache.get(tool.name, False):
            self._record(tool.name, "cached")
            return True

        if self.channel is None:
            self.logger.error("review_channel_missing", tool=tool.name)
            self._record(tool.name, "denied", reason="no_channel")
            return False

        request = ReviewRequest(
            action_name=tool.name,
            action_args=dict(args),
            description=tool.get_approval_preview(**args),
        )
        self.logger.info("review_requested", tool=tool.name)
        decision = await self.channel.review(request)
        return self._process_decision(decision, tool.name)

    def _process_decision(self, decision: ReviewDecision | str, tool_name: str) -> bool:
        try:
            decision = ReviewDecision(str(getattr(decision, "value", decision)).lower().strip())
        except ValueError:
            decision = ReviewDecision.DENY

        approved = False
        if decision == ReviewDecision.TRUST:
            self.trust_mode = True
            approved = True
            outcome = "trusted"
        elif decision == ReviewDecision.APPROVE:
            self.approval_cache[tool_name] = True
            approved = True
            outcome = "approved"
        else:
            outcome = "denied"

        self.logger.info("review_decided", tool=tool_name, decision=outcome)
        self._record(tool_name, outcome)
        return approved

    def _record(self, tool_name: str, decision: str, **extra: Any) -> None:
        record = {
            "timestamp": datetime.now().isoformat(),
            "tool": tool_name,
            "decision": decision,
            **extra,
        }
        self.history.append(record)
