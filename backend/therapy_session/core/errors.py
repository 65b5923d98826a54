"""Error taxonomy for the session engine.

Every error is local and synchronous. An operation that raises one of these
leaves the engine exactly as it was before the call.
"""

from typing import Any


class SessionError(Exception):
    """Base class for all session engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class StateError(SessionError):
    """Raised when an operation is not valid in the current lifecycle phase."""

    def __init__(self, operation: str, phase: Any):
        phase_name = getattr(phase, "value", phase)
        super().__init__(
            f"Cannot {operation} while session is {phase_name}",
            {"operation": operation, "phase": phase_name},
        )
        self.operation = operation
        self.phase = phase


class ValidationError(SessionError, ValueError):
    """Raised for out-of-range numeric input such as a success rate of 120."""


class ConfigurationError(SessionError):
    """Raised when a session configuration cannot be started."""


class ActivityIndexError(SessionError, IndexError):
    """Raised when an activity index falls outside the activity sequence."""

    def __init__(self, index: int, size: int):
        super().__init__(
            f"Activity index {index} out of range",
            {"index": index, "activities": size},
        )
        self.index = index
        self.size = size
