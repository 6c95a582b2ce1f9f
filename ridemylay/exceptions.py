"""
Exception hierarchy for RideMyLay realtime.

Connection-level errors (AuthError, TransportError and its subclasses,
ConnectionFailed) stay inside the client Connection Manager and surface to
the UI only as lifecycle events. DeliveryError and PersistenceError are
logged where they happen and never propagate past a dispatch loop or a
socket handler.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information for error handling.

    Provides structured context for error reporting and debugging.
    """

    user_id: str | None = None
    socket_id: str | None = None
    event: str | None = None
    room: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "socket_id": self.socket_id,
            "event": self.event,
            "room": self.room,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class RideMyLayError(Exception):
    """
    Base exception for all RideMyLay realtime errors.

    Carries a technical message, a user-facing message and structured
    details, and logs itself on construction.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)
        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            "RideMyLay error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API and socket error payloads."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class AuthError(RideMyLayError):
    """Handshake rejected: missing, invalid or expired token, or unknown user."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, reason: str = "invalid_token", **kwargs):
        kwargs.setdefault("user_friendly", "Please log in again")
        super().__init__(message, context, **kwargs)
        self.reason = reason
        self.details["reason"] = reason


class TransportError(RideMyLayError):
    """Network-level failure or timeout. Recoverable through backoff and retry."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, transport: str = "socketio", **kwargs):
        super().__init__(message, context, **kwargs)
        self.transport = transport
        self.details["transport"] = transport


class StaleConnectionError(TransportError):
    """Heartbeat acknowledgment missing while the transport reports connected."""

    def __init__(self, message: str, context: ErrorContext | None = None, silence_seconds: float = 0.0, **kwargs):
        super().__init__(message, context, **kwargs)
        self.silence_seconds = silence_seconds
        self.details["silence_seconds"] = round(silence_seconds, 3)


class ConnectionFailed(RideMyLayError):
    """Reconnect attempts exhausted. Terminal until a manual reconnect."""

    def __init__(self, message: str, context: ErrorContext | None = None, attempts: int = 0, **kwargs):
        kwargs.setdefault("user_friendly", "Connection lost. Use reconnect to try again.")
        super().__init__(message, context, **kwargs)
        self.attempts = attempts
        self.details["attempts"] = attempts


class DeliveryError(RideMyLayError):
    """A registered event callback raised while handling an event."""

    def __init__(self, message: str, context: ErrorContext | None = None, event_kind: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.event_kind = event_kind
        if event_kind:
            self.details["event_kind"] = event_kind


class PersistenceError(RideMyLayError):
    """The store failed to read or write a notification, message or reference row."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        operation: str = "unknown",
        table: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.operation = operation
        self.table = table
        self.details["operation"] = operation
        if table:
            self.details["table"] = table


class ValidationError(RideMyLayError):
    """An inbound payload failed validation."""

    log_level = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, field: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.field = field
        if field:
            self.details["field"] = field


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)
