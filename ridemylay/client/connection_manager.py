"""
Connection Manager for the client socket service.

Owns the single logical socket connection: its lifecycle state machine,
the retry policy, the heartbeat that detects half-open connections, and
the coalescing guard that makes every concurrent connect()/ready() caller
share one in-flight attempt. Consumers get the Subscription Registry and
Event Dispatcher through the manager and observe lifecycle changes through
observe(); transport exceptions never leave this module.
"""

import asyncio
import inspect
import time
from collections.abc import Callable
from typing import Any, Protocol

from ..config import ClientConfig, get_config
from ..events import ClientEvent, LifecycleEvent, ServerEvent
from ..exceptions import (
    AuthError,
    ConnectionFailed,
    DeliveryError,
    StaleConnectionError,
    TransportError,
    ValidationError,
    create_error_context,
)
from ..schemas.realtime import MessagePayload
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_state_machine import ClientConnectionStateMachine, ConnectionState, ConnectionStatus
from .event_dispatcher import Callback, Cleanup, EventDispatcher
from .normalization import parse_message
from .subscription_registry import SubscriptionRegistry
from .transport import SocketIOTransport, Transport

logger = get_logger(__name__)


class TokenProvider(Protocol):
    """Source of the bearer token presented at handshake."""

    def get_token(self) -> str | None: ...

    def clear_token(self) -> None: ...


class InMemoryTokenProvider:
    """Token holder for scripts, tests and single-user tooling."""

    def __init__(self, token: str | None = None) -> None:
        self.token = token

    def get_token(self) -> str | None:
        return self.token

    def clear_token(self) -> None:
        self.token = None


class ConnectionManager:
    """
    Single owned socket connection with retry, heartbeat and coalescing.

    Create one per application session and inject it into consumers.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        config: ClientConfig | None = None,
        transport_factory: Callable[[], Transport] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or get_config().client
        self._token_provider = token_provider
        self._transport_factory = transport_factory or (lambda: SocketIOTransport(self._config.socketio_path))
        self._clock = clock

        self.machine = ClientConnectionStateMachine(max_reconnect_attempts=self._config.max_reconnect_attempts)
        self.dispatcher = EventDispatcher()
        self.subscriptions = SubscriptionRegistry(self)

        self._transport: Transport | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._retry_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._generation = 0
        self._has_connected = False
        self._last_ack = clock()
        self._observers: dict[LifecycleEvent, list[Callback]] = {event: [] for event in LifecycleEvent}
        self.transports_created = 0

        # Liveness acknowledgments
        self.dispatcher.on(ServerEvent.PONG, self._record_ack, system=True)
        self.dispatcher.on(ServerEvent.HEARTBEAT, self._record_ack, system=True)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self.machine.snapshot()

    @property
    def status(self) -> ConnectionStatus:
        return self.machine.status

    @property
    def is_connected(self) -> bool:
        return self.machine.status is ConnectionStatus.CONNECTED

    def observe_state(self, callback: Callable[[ConnectionState], None]) -> Cleanup:
        """Call back synchronously on every lifecycle transition."""
        self.machine.state_listeners.append(callback)

        def cleanup() -> None:
            if callback in self.machine.state_listeners:
                self.machine.state_listeners.remove(callback)

        return cleanup

    # ------------------------------------------------------------------
    # Lifecycle observers
    # ------------------------------------------------------------------

    def observe(self, event: LifecycleEvent, callback: Callback) -> Cleanup:
        """Subscribe to a process-wide lifecycle event. Returns a cleanup function."""
        observers = self._observers[LifecycleEvent(event)]
        observers.append(callback)

        def cleanup() -> None:
            if callback in observers:
                observers.remove(callback)

        return cleanup

    async def _publish(self, event: LifecycleEvent, payload: dict[str, Any]) -> None:
        for callback in list(self._observers[event]):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: observer isolation
                DeliveryError(
                    f"Lifecycle observer for {event} raised: {e}",
                    context=create_error_context(event=str(event)),
                    event_kind=str(event),
                )

    # ------------------------------------------------------------------
    # Connect / ready / reconnect
    # ------------------------------------------------------------------

    async def connect(self) -> ConnectionState:
        """
        Connect, or join the attempt already in flight.

        No-op without a token, when already connected, or after retries
        were exhausted (use reconnect() then).
        """
        if self.machine.status is ConnectionStatus.FAILED:
            logger.info("Connect ignored in failed state; manual reconnect required")
            return self.state
        return await self._start()

    async def ready(self) -> bool:
        """Await a settled connection with subscriptions replayed. True when connected."""
        await self.connect()
        return self.is_connected

    async def reconnect(self) -> ConnectionState:
        """Manual reconnect: reset the retry counter and try again immediately."""
        if self.is_connected:
            return self.state
        self._cancel_retry()
        self.machine.reset_counters()
        logger.info("Manual reconnect requested")
        return await self._start()

    async def _start(self) -> ConnectionState:
        if self.is_connected:
            return self.state
        if self._connect_task is None or self._connect_task.done():
            token = self._token_provider.get_token()
            if not token:
                logger.warning("No auth token available, socket connection not established")
                return self.state
            self._cancel_retry()
            self._connect_task = asyncio.create_task(self._attempt(token, self._generation))
        await asyncio.shield(self._connect_task)
        return self.state

    async def _attempt(self, token: str, generation: int) -> None:
        if generation != self._generation:
            return
        await self._teardown_transport()
        if generation != self._generation:
            return
        self.machine.begin_connect()

        transport = self._transport_factory()
        self.transports_created += 1
        self._transport = transport

        async def on_transport_disconnect() -> None:
            await self._handle_transport_disconnect(transport)

        transport.on_disconnect(on_transport_disconnect)
        self.dispatcher.bind(transport)

        timeout = self._config.connect_timeout
        try:
            await asyncio.wait_for(
                transport.connect(self._config.server_url, {"token": token}, timeout), timeout=timeout
            )
        except AuthError as e:
            if generation == self._generation:
                await self._handle_auth_failure(e)
            return
        except (TimeoutError, TransportError, OSError) as e:
            if generation == self._generation:
                error = e if isinstance(e, TransportError) else TransportError(f"Connection attempt failed: {e!r}")
                await self._handle_connect_failure(error)
            return

        if generation != self._generation or transport is not self._transport:
            # disconnect() ran while this attempt was in flight
            await self._close_quietly(transport)
            return

        await self._on_connected(transport)

    async def _on_connected(self, transport: Transport) -> None:
        self.machine.connection_established()
        self._last_ack = self._clock()
        self._start_heartbeat()

        await self.subscriptions.replay_all()
        if transport is not self._transport or not self.is_connected:
            return

        reconnected = self._has_connected
        self._has_connected = True
        payload = {"attempts": 0, "transports_created": self.transports_created}
        await self._publish(LifecycleEvent.CONNECTED, payload)
        if reconnected:
            await self._publish(LifecycleEvent.RECONNECTED, payload)

    # ------------------------------------------------------------------
    # Failure handling and retry policy
    # ------------------------------------------------------------------

    async def _handle_auth_failure(self, error: AuthError) -> None:
        await self._teardown_transport()
        self.machine.give_up(error=error.message)
        self._token_provider.clear_token()
        await self._publish(
            LifecycleEvent.CONNECTION_FAILED,
            {"reason": "auth", "message": error.user_friendly, "attempts": self.machine.reconnect_attempts},
        )

    async def _handle_connect_failure(self, error: TransportError) -> None:
        await self._teardown_transport()
        self.machine.connection_lost(error=error.message)
        await self._retry_or_fail(backoff=True)

    async def _handle_transport_disconnect(self, transport: Transport) -> None:
        if transport is not self._transport or not self.is_connected:
            return
        await self._drop_connection(TransportError("Transport disconnected"), reason="transport")

    async def _drop_connection(self, error: TransportError, reason: str) -> None:
        self._stop_heartbeat()
        await self._teardown_transport()
        self.machine.connection_lost(error=error.message)
        await self._publish(LifecycleEvent.DISCONNECTED, {"reason": reason, "error": error.message})
        await self._retry_or_fail(backoff=False)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` after a connect error."""
        return min(self._config.backoff_base * 2 ** max(attempt - 1, 0), self._config.backoff_ceiling)

    async def _retry_or_fail(self, backoff: bool) -> None:
        if self.machine.retries_exhausted():
            failure = ConnectionFailed(
                "Reconnect attempts exhausted", attempts=self.machine.reconnect_attempts
            )
            self.machine.give_up(error=self.machine.last_error)
            await self._publish(
                LifecycleEvent.CONNECTION_FAILED,
                {"reason": "max_attempts", "message": failure.user_friendly, "attempts": failure.attempts},
            )
            return

        attempt = self.machine.record_retry()
        delay = self.backoff_delay(attempt) if backoff else self._config.reconnect_delay
        logger.info(
            "Scheduling reconnect",
            attempt=attempt,
            max_attempts=self.machine.max_reconnect_attempts,
            delay=delay,
            last_error=self.machine.last_error,
        )
        self._retry_task = asyncio.create_task(self._retry_after(delay))

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry_task = None
        if self.machine.status is not ConnectionStatus.ERROR:
            return
        if not self._token_provider.get_token():
            self.machine.give_up(error="No auth token available")
            await self._publish(
                LifecycleEvent.CONNECTION_FAILED,
                {"reason": "auth", "message": "Please log in again", "attempts": self.machine.reconnect_attempts},
            )
            return
        await self._start()

    def _cancel_retry(self) -> None:
        task = self._retry_task
        self._retry_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def _record_ack(self, _payload: Any = None) -> None:
        self._last_ack = self._clock()

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    def _stop_heartbeat(self) -> None:
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _heartbeat_loop(self) -> None:
        while self.is_connected:
            await asyncio.sleep(self._config.heartbeat_interval)
            if await self.check_heartbeat():
                return
            await self.emit(ClientEvent.HEARTBEAT)

    async def check_heartbeat(self) -> bool:
        """
        Force a reconnect if the connection has gone silent.

        Returns:
            True if the connection was judged stale and torn down
        """
        if not self.is_connected:
            return False
        silence = self._clock() - self._last_ack
        if silence <= self._config.heartbeat_timeout:
            return False
        error = StaleConnectionError(
            f"No heartbeat acknowledgment for {silence:.1f}s", silence_seconds=silence
        )
        await self._drop_connection(error, reason="stale")
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def _close_quietly(self, transport: Transport) -> None:
        try:
            await transport.disconnect()
        except (TransportError, OSError) as e:
            logger.debug("Transport close failed", error=str(e))

    async def _teardown_transport(self) -> None:
        transport = self._transport
        self._transport = None
        self.dispatcher.unbind()
        if transport is not None:
            await self._close_quietly(transport)

    async def disconnect(self) -> None:
        """
        Client-initiated disconnect.

        Releases consumer listeners, forgets every subscription, closes the
        transport and resets counters. Never triggers a retry and is safe to
        call repeatedly.
        """
        self._generation += 1
        self._cancel_retry()
        self._stop_heartbeat()
        self.dispatcher.clear()
        self.subscriptions.clear()
        self._connect_task = None

        was_active = self.machine.status is not ConnectionStatus.DISCONNECTED
        await self._teardown_transport()
        if was_active:
            self.machine.shut_down()
        self.machine.reset_counters()
        self._has_connected = False
        if was_active:
            await self._publish(LifecycleEvent.DISCONNECTED, {"reason": "client"})

    # ------------------------------------------------------------------
    # Emitting
    # ------------------------------------------------------------------

    async def emit(self, event: str, data: Any = None) -> bool:
        """Send an event if connected. Returns False when it could not be sent."""
        transport = self._transport
        if transport is None or not self.is_connected:
            logger.debug("Emit skipped while not connected", socket_event=str(event))
            return False
        try:
            await transport.emit(str(event), data)
        except TransportError:
            return False
        return True

    def on(self, kind: str, callback: Callback) -> Cleanup:
        """Register an inbound event callback (see EventDispatcher.on)."""
        return self.dispatcher.on(str(kind), callback)

    def on_message(self, callback: Callable[[MessagePayload], Any]) -> Cleanup:
        """Register a message_received callback that is handed validated messages."""

        def deliver(payload: Any) -> Any:
            try:
                message = parse_message(payload)
            except ValidationError:
                logger.warning("Malformed message_received payload dropped")
                return None
            return callback(message)

        return self.dispatcher.on(str(ServerEvent.MESSAGE_RECEIVED), deliver)

    async def send_message(self, message: dict[str, Any]) -> bool:
        return await self.emit(ClientEvent.NEW_MESSAGE, message)

    async def send_typing(self, chat_id: str, is_typing: bool) -> bool:
        return await self.emit(ClientEvent.TYPING, {"chatId": chat_id, "isTyping": is_typing})

    async def mark_messages_read(self, chat_id: str) -> bool:
        return await self.emit(ClientEvent.READ_MESSAGES, chat_id)

    async def mark_notification_read(self, notification_id: str) -> bool:
        return await self.emit(ClientEvent.READ_NOTIFICATION, {"notificationId": notification_id})

    async def send_bet_interaction(self, bet_id: str, interaction_type: str, data: Any = None) -> bool:
        return await self.emit(ClientEvent.BET_INTERACTION, {"betId": bet_id, "type": interaction_type, "data": data})

    async def ping(self) -> bool:
        return await self.emit(ClientEvent.PING)

    def get_stats(self) -> dict[str, Any]:
        return {**self.machine.get_stats(), "transports_created": self.transports_created}
