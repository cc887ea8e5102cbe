"""Custom exceptions for the planning poker service."""

from typing import Any


class PokerError(Exception):
    """Base exception for all planning poker errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(PokerError):
    """Base exception for session-related errors."""

    pass


class InvalidPhaseError(SessionError):
    """Raised when an operation is not legal in the current phase."""

    def __init__(
        self,
        message: str,
        expected_phase: str | None = None,
        actual_phase: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.expected_phase = expected_phase
        self.actual_phase = actual_phase


class UnknownParticipantError(SessionError):
    """Raised when a participant id is not registered."""

    def __init__(self, participant_id: str, **kwargs: Any):
        super().__init__(f"Unknown participant: {participant_id}", **kwargs)
        self.participant_id = participant_id


class NothingToRevealError(SessionError):
    """Raised when reveal is requested with no round in progress."""

    def __init__(self, message: str = "No voting round to reveal", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(PokerError):
    """Raised when request input fails validation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
