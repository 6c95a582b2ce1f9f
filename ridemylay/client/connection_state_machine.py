"""
Connection state machine for the client socket service.

Implements the lifecycle of the single logical socket connection:

    disconnected -> connecting -> connected
    connecting/connected -> error -> connecting   (retry with backoff)
    connecting/error -> failed                    (auth rejected or retries exhausted)
    any active state -> disconnected              (client-initiated disconnect)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot of the connection lifecycle for observers and the UI."""

    status: ConnectionStatus
    reconnect_attempts: int
    last_error: str | None = None


class ClientConnectionStateMachine(StateMachine):
    """
    State machine for the client socket connection.

    The machine owns the retry counter and last error. Transitions that are
    not defined for the current state raise TransitionNotAllowed, so the
    Connection Manager can never move the lifecycle through an invalid path.
    """

    disconnected = State("Disconnected", initial=True)
    connecting = State("Connecting")
    connected = State("Connected")
    error = State("Error")
    failed = State("Failed")

    begin_connect = disconnected.to(connecting) | error.to(connecting) | failed.to(connecting)
    connection_established = connecting.to(connected)
    connection_lost = connecting.to(error) | connected.to(error)
    give_up = connecting.to(failed) | error.to(failed)
    shut_down = (
        connecting.to(disconnected) | connected.to(disconnected) | error.to(disconnected) | failed.to(disconnected)
    )

    def __init__(self, connection_id: str = "socket", max_reconnect_attempts: int = 30):
        # Set attributes BEFORE super().__init__() because on_enter_state is called during init
        self.connection_id = connection_id
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_attempts = 0
        self.last_error: str | None = None
        self.last_connected_time: datetime | None = None
        self.total_connections = 0
        self.state_listeners: list[Callable[[ConnectionState], None]] = []

        super().__init__()

    def on_enter_state(self, state: State, event: Any = None, **kwargs: Any) -> None:
        logger.info(
            "Socket connection state transition",
            connection_id=self.connection_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
            reconnect_attempts=self.reconnect_attempts,
        )
        snapshot = ConnectionState(
            status=ConnectionStatus(state.id), reconnect_attempts=self.reconnect_attempts, last_error=self.last_error
        )
        for listener in list(self.state_listeners):
            try:
                listener(snapshot)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: observer isolation
                logger.error("Connection state listener failed", error=str(e), error_type=type(e).__name__)

    def on_connection_established(self) -> None:
        """Successful connections reset failure tracking."""
        self.last_connected_time = datetime.now(UTC)
        self.total_connections += 1
        self.reconnect_attempts = 0
        self.last_error = None

    def on_connection_lost(self, error: str | None = None) -> None:
        self.last_error = error or "connection lost"

    def on_give_up(self, error: str | None = None) -> None:
        if error:
            self.last_error = error
        logger.error(
            "Socket connection failed permanently",
            connection_id=self.connection_id,
            attempts=self.reconnect_attempts,
            last_error=self.last_error,
        )

    @property
    def status(self) -> ConnectionStatus:
        return ConnectionStatus(self.current_state.id)

    def snapshot(self) -> ConnectionState:
        return ConnectionState(
            status=self.status, reconnect_attempts=self.reconnect_attempts, last_error=self.last_error
        )

    def retries_exhausted(self) -> bool:
        return self.reconnect_attempts >= self.max_reconnect_attempts

    def record_retry(self) -> int:
        """Count a scheduled retry. Returns the new attempt number."""
        self.reconnect_attempts += 1
        return self.reconnect_attempts

    def reset_counters(self) -> None:
        """Clear retry tracking, used by manual reconnect and disconnect."""
        self.reconnect_attempts = 0
        self.last_error = None

    def get_stats(self) -> dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "current_state": self.current_state.id,
            "reconnect_attempts": self.reconnect_attempts,
            "max_reconnect_attempts": self.max_reconnect_attempts,
            "total_connections": self.total_connections,
            "last_connected_time": self.last_connected_time.isoformat() if self.last_connected_time else None,
            "last_error": self.last_error,
        }
