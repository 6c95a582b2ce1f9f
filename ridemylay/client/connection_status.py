"""
Connection status indicator state.

Derives what the persistent connection banner shows from the Connection
Manager's lifecycle: nothing while connected or idle, a banner right away
for error and failed, and a banner for connecting only once the attempt has
lasted longer than the grace period.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from .connection_manager import ConnectionManager
from .connection_state_machine import ConnectionState, ConnectionStatus


@dataclass(frozen=True)
class StatusBanner:
    status: ConnectionStatus
    message: str
    reconnect_attempts: int
    max_reconnect_attempts: int
    can_reconnect: bool


class ConnectionStatusIndicator:
    def __init__(
        self,
        manager: ConnectionManager,
        grace_period: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._manager = manager
        self.grace_period = grace_period
        self._clock = clock
        self._connecting_since: float | None = None
        self._cleanup = manager.observe_state(self._on_state)

    def _on_state(self, state: ConnectionState) -> None:
        if state.status is ConnectionStatus.CONNECTING:
            # A retry loop passes through error; keep the start of the outage
            if self._connecting_since is None:
                self._connecting_since = self._clock()
        elif state.status is not ConnectionStatus.ERROR:
            self._connecting_since = None

    def banner(self) -> StatusBanner | None:
        """Current banner, or None when nothing should be shown."""
        state = self._manager.state
        max_attempts = self._manager.machine.max_reconnect_attempts
        if state.status is ConnectionStatus.FAILED:
            message = "Connection lost. Please reconnect to receive messages."
        elif state.status is ConnectionStatus.ERROR:
            message = "Attempting to reconnect..."
        elif state.status is ConnectionStatus.CONNECTING:
            if self._connecting_since is None or self._clock() - self._connecting_since < self.grace_period:
                return None
            message = "Connecting..."
        else:
            return None
        return StatusBanner(
            status=state.status,
            message=message,
            reconnect_attempts=state.reconnect_attempts,
            max_reconnect_attempts=max_attempts,
            can_reconnect=True,
        )

    async def reconnect(self) -> ConnectionState:
        """The banner's reconnect action."""
        return await self._manager.reconnect()

    def close(self) -> None:
        self._cleanup()
