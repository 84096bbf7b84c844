"""Centralized exception hierarchy for CircleCall.

This module defines the typed failures returned to the calling layer by the
call session core and the discipline engine, organized in a hierarchy so
callers can map whole families (not found, invalid state, forbidden) to
user-facing responses.
"""

from __future__ import annotations

from typing import Any, Optional


class CircleCallError(Exception):
    """Base exception for all CircleCall errors.

    Attributes:
        message: Human-readable error message.
        code: Optional error code for programmatic handling.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(CircleCallError):
    """Raised when there's a configuration problem."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# Not Found Errors
# =============================================================================

class NotFoundError(CircleCallError):
    """Base exception for a referenced call, participant or room that does not exist."""
    pass


class CallNotFoundError(NotFoundError):
    """Raised when a call is not found."""

    def __init__(self, call_id: str):
        super().__init__(
            message=f"Call '{call_id}' not found",
            code="CALL_NOT_FOUND",
            details={"call_id": call_id},
        )


class ParticipantNotFoundError(NotFoundError):
    """Raised when a user is not a participant of a call."""

    def __init__(self, call_id: str, user_id: str):
        super().__init__(
            message=f"User '{user_id}' is not a participant of call '{call_id}'",
            code="PARTICIPANT_NOT_FOUND",
            details={"call_id": call_id, "user_id": user_id},
        )


class RoomNotFoundError(NotFoundError):
    """Raised when a room is not found."""

    def __init__(self, room_id: str):
        super().__init__(
            message=f"Room '{room_id}' not found",
            code="ROOM_NOT_FOUND",
            details={"room_id": room_id},
        )


# =============================================================================
# State Errors
# =============================================================================

class InvalidStateError(CircleCallError):
    """Base exception for operations attempted in a state that forbids them."""
    pass


class CallEndedError(InvalidStateError):
    """Raised when mutating a call that has already ended."""

    def __init__(self, call_id: str):
        super().__init__(
            message=f"Call '{call_id}' has ended",
            code="CALL_ENDED",
            details={"call_id": call_id},
        )


class CircleNotActiveError(InvalidStateError):
    """Raised when advancing the speaker while circle talking is off."""

    def __init__(self, call_id: str):
        super().__init__(
            message=f"Circle talking is not active on call '{call_id}'",
            code="CIRCLE_NOT_ACTIVE",
            details={"call_id": call_id},
        )


class NoParticipantsError(CircleCallError):
    """Raised when starting circle talking on a call nobody has joined."""

    def __init__(self, call_id: str):
        super().__init__(
            message=f"No participants to start circle on call '{call_id}'",
            code="NO_PARTICIPANTS",
            details={"call_id": call_id},
        )


# =============================================================================
# Authorization Errors
# =============================================================================

class ForbiddenError(CircleCallError):
    """Raised when the requester lacks admin rights for a transition."""

    def __init__(self, call_id: str, requester_id: Optional[str], action: str):
        super().__init__(
            message=f"Only admin can {action} on call '{call_id}'",
            code="FORBIDDEN",
            details={
                "call_id": call_id,
                "requester_id": requester_id,
                "action": action,
            },
        )


# =============================================================================
# Persistence Errors
# =============================================================================

class PersistenceError(CircleCallError):
    """Raised when database operations fail."""

    def __init__(
        self,
        operation: str,
        reason: str,
        original_error: Optional[Exception] = None,
    ):
        details = {"operation": operation, "reason": reason}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message=f"Database {operation} failed: {reason}",
            code="PERSISTENCE_ERROR",
            details=details,
        )
