"""
Error taxonomy for the orchestration core.

Nodes raise these; the orchestrator does not catch them. The only failure
that is turned into a controlled stop is a retry-ceiling breach, which is
handled by the TerminationPolicy and never raised.
"""

from typing import Any


class PlanforceError(Exception):
    """Base class for all planforce errors."""


class CapabilityError(PlanforceError):
    """A registered capability handler failed while executing."""

    def __init__(self, name: str, message: str, cause: BaseException | None = None):
        super().__init__(f"Capability '{name}' failed: {message}")
        self.name = name
        self.cause = cause


class DuplicateCapabilityError(PlanforceError):
    """A capability with the same name is already registered."""


class CapabilityNotFoundError(PlanforceError):
    """No capability is registered under the requested name."""


class RegistryFrozenError(PlanforceError):
    """Registration attempted after orchestration has started."""


class MalformedActionError(PlanforceError):
    """The model requested an action with missing or invalid arguments."""

    def __init__(self, action: str, message: str, arguments: Any = None):
        super().__init__(f"Malformed '{action}' action: {message}")
        self.action = action
        self.arguments = arguments


class InferenceGatewayError(PlanforceError):
    """The inference gateway could not produce a response."""

    def __init__(self, message: str, error_type: str | None = None):
        super().__init__(message)
        self.error_type = error_type


class InvalidTransitionError(PlanforceError):
    """The orchestrator attempted a transition its table does not allow."""
