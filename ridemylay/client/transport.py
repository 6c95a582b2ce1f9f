"""
Physical socket transport used by the Connection Manager.

A Transport instance represents exactly one physical connection attempt.
The Connection Manager creates a fresh instance per attempt through a
factory and never holds more than one at a time.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import socketio

from ..events import AUTH_ERROR_PREFIX
from ..exceptions import AuthError, TransportError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Any], Awaitable[None]]
DisconnectHandler = Callable[[], Awaitable[None]]


class Transport(Protocol):
    """What the Connection Manager and Event Dispatcher need from a socket."""

    @property
    def connected(self) -> bool: ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Install the single inbound handler for an event name."""

    def on_disconnect(self, handler: DisconnectHandler) -> None:
        """Install the handler called when the connection drops."""

    async def connect(self, url: str, auth: dict[str, Any], timeout: float) -> None:
        """Open the connection. Raises AuthError or TransportError."""

    async def disconnect(self) -> None: ...

    async def emit(self, event: str, data: Any = None) -> None:
        """Send one event. Raises TransportError when the socket is unusable."""


class SocketIOTransport:
    """Transport backed by python-socketio's AsyncClient with its own reconnection disabled."""

    def __init__(self, socketio_path: str = "socket.io") -> None:
        self._socketio_path = socketio_path
        self._client = socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)
        self._connect_error: str | None = None
        self._disconnect_handler: DisconnectHandler | None = None
        self._client.on("connect_error", self._handle_connect_error)
        self._client.on("disconnect", self._handle_disconnect)

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    async def _handle_connect_error(self, data: Any = None) -> None:
        if isinstance(data, dict):
            self._connect_error = str(data.get("message", data))
        else:
            self._connect_error = str(data) if data is not None else None

    async def _handle_disconnect(self, *args: Any) -> None:
        # Newer python-socketio passes a reason argument
        if self._disconnect_handler is not None:
            await self._disconnect_handler()

    def on(self, event: str, handler: EventHandler) -> None:
        async def pump(*args: Any) -> None:
            await handler(args[0] if args else None)

        self._client.on(event, pump)

    def on_disconnect(self, handler: DisconnectHandler) -> None:
        self._disconnect_handler = handler

    async def connect(self, url: str, auth: dict[str, Any], timeout: float) -> None:
        self._connect_error = None
        try:
            await self._client.connect(
                url,
                auth=auth,
                transports=["websocket"],
                socketio_path=self._socketio_path,
                wait_timeout=timeout,
            )
        except socketio.exceptions.ConnectionError as e:
            message = self._connect_error or str(e)
            context = create_error_context(metadata={"url": url})
            if message.startswith(AUTH_ERROR_PREFIX):
                raise AuthError(message, context=context) from e
            raise TransportError(message, context=context) from e

    async def disconnect(self) -> None:
        self._disconnect_handler = None
        await self._client.disconnect()

    async def emit(self, event: str, data: Any = None) -> None:
        try:
            await self._client.emit(event, data)
        except socketio.exceptions.SocketIOError as e:
            raise TransportError(f"Emit of {event} failed: {e}", context=create_error_context(event=event)) from e
