"""
Event Dispatch Layer for the client socket service.

Listeners are kept here rather than on the transport, so consumers can
register before a connection exists and registrations survive reconnects.
When a transport is bound, one pump per event kind is installed on it; each
inbound payload is normalized once and then fanned out to the listeners of
that kind in registration order.
"""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..exceptions import DeliveryError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger
from .normalization import normalize_payload
from .transport import Transport

logger = get_logger(__name__)

Callback = Callable[[Any], Any]
Cleanup = Callable[[], None]


@dataclass(eq=False)
class _Listener:
    kind: str
    callback: Callback
    system: bool = False
    active: bool = True


class EventDispatcher:
    """
    Typed fan-out from transport events to registered callbacks.

    Delivery is serialized: one inbound event runs all of its callbacks to
    completion before the next event is delivered, so events are handled in
    the order the transport received them.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Listener]] = {}
        self._transport: Transport | None = None
        self._pumped: set[str] = set()
        self._lock = asyncio.Lock()

    def on(self, kind: str, callback: Callback, *, system: bool = False) -> Cleanup:
        """
        Register a callback for an event kind.

        Works whether or not a transport is bound yet. The returned cleanup
        detaches the callback immediately; an event already being delivered
        to other callbacks will not reach it afterwards.

        Args:
            kind: Wire event name
            callback: Plain function or coroutine function taking the payload
            system: Internal listener that survives clear()

        Returns:
            Idempotent cleanup function
        """
        listener = _Listener(kind=kind, callback=callback, system=system)
        self._listeners.setdefault(kind, []).append(listener)
        self._install_pump(kind)

        def cleanup() -> None:
            if not listener.active:
                return
            listener.active = False
            listeners = self._listeners.get(kind, [])
            if listener in listeners:
                listeners.remove(listener)

        return cleanup

    def listener_count(self, kind: str) -> int:
        return len(self._listeners.get(kind, []))

    def bind(self, transport: Transport) -> None:
        """Attach to a new transport and install pumps for every known kind."""
        self._transport = transport
        self._pumped = set()
        for kind in list(self._listeners):
            self._install_pump(kind)

    def unbind(self) -> None:
        self._transport = None
        self._pumped = set()

    def clear(self) -> None:
        """Release every consumer listener; system listeners stay."""
        for kind, listeners in self._listeners.items():
            kept = []
            for listener in listeners:
                if listener.system:
                    kept.append(listener)
                else:
                    listener.active = False
            self._listeners[kind] = kept

    def _install_pump(self, kind: str) -> None:
        if self._transport is None or kind in self._pumped:
            return

        async def pump(payload: Any) -> None:
            await self.dispatch(kind, payload)

        self._transport.on(kind, pump)
        self._pumped.add(kind)

    async def dispatch(self, kind: str, payload: Any) -> int:
        """
        Deliver one inbound event to its listeners.

        Returns:
            Number of callbacks that ran without raising
        """
        async with self._lock:
            data = normalize_payload(payload)
            delivered = 0
            for listener in list(self._listeners.get(kind, [])):
                if not listener.active:
                    continue
                try:
                    result = listener.callback(data)
                    if inspect.isawaitable(result):
                        await result
                    delivered += 1
                except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: callback isolation
                    DeliveryError(
                        f"Callback for {kind} raised: {e}",
                        context=create_error_context(event=kind),
                        event_kind=kind,
                        details={"error_type": type(e).__name__},
                    )
            return delivered
