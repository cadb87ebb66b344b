"""Error taxonomy for planning and plan execution."""

from __future__ import annotations


class GoapError(Exception):
    """Base class for all goaploop errors."""


class PreconditionError(GoapError):
    """Raised when an action is applied to a state that violates its preconditions."""

    def __init__(self, action_name: str, missing: dict[str, object]) -> None:
        """Store the offending action and the unmet preconditions."""
        self.action_name = action_name
        self.missing = dict(missing)
        details = ", ".join(f"{key}={value!r}" for key, value in sorted(self.missing.items()))
        super().__init__(f"action {action_name!r} not applicable (unmet: {details})")


class UnknownExecutionTypeError(GoapError):
    """Raised when an action carries a strategy tag outside the supported set."""

    def __init__(self, action_name: str, strategy: str) -> None:
        """Store the action name and the rejected strategy tag."""
        self.action_name = action_name
        self.strategy = strategy
        super().__init__(f"unknown execution type {strategy!r} for action {action_name!r}")


class ActionExecutionError(GoapError):
    """Raised when an action's executor callback fails."""

    def __init__(self, action_name: str, message: str) -> None:
        """Store the failing action name and the underlying message."""
        self.action_name = action_name
        self.message = message
        super().__init__(f"action {action_name!r} failed: {message}")


class NoPlanFoundError(GoapError):
    """Raised by callers that require a plan when the search found none."""

    def __init__(self, reason: str = "frontier_exhausted") -> None:
        """Store the search termination reason."""
        self.reason = reason
        super().__init__(f"no viable plan ({reason})")


class SearchBudgetExceededError(NoPlanFoundError):
    """Raised when the iteration or cost cap ended the search."""


__all__ = [
    "ActionExecutionError",
    "GoapError",
    "NoPlanFoundError",
    "PreconditionError",
    "SearchBudgetExceededError",
    "UnknownExecutionTypeError",
]
