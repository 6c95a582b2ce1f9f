"""
Wires socket notification events into the client store.

new_notification and notifications_init pass through the deduplication
filter before they reach the store; admitted live notifications are also
offered to the native notification surface.
"""

from typing import Any

from ..events import LifecycleEvent, ServerEvent
from ..exceptions import ValidationError
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_manager import ConnectionManager
from .event_dispatcher import Cleanup
from .normalization import parse_notification, parse_notifications
from .notification_filter import NotificationFilter
from .notification_store import NotificationStore
from .notification_surface import NotificationSurface

logger = get_logger(__name__)


class NotificationFeed:
    def __init__(
        self,
        manager: ConnectionManager,
        store: NotificationStore | None = None,
        notification_filter: NotificationFilter | None = None,
        surface: NotificationSurface | None = None,
    ) -> None:
        self.manager = manager
        self.store = store or NotificationStore()
        self.filter = notification_filter or NotificationFilter()
        self.surface = surface or NotificationSurface()
        self._cleanups: list[Cleanup] = []

    @property
    def started(self) -> bool:
        return bool(self._cleanups)

    async def start(self) -> None:
        """
        Register listeners and subscribe to the notifications channel.

        Listeners are registered afresh on every call: a client disconnect
        releases them in the dispatcher.
        """
        self.stop()
        self._cleanups = [
            self.manager.on(ServerEvent.NOTIFICATIONS_INIT, self._on_init),
            self.manager.on(ServerEvent.NEW_NOTIFICATION, self._on_new),
            self.manager.on(ServerEvent.NOTIFICATION_UPDATED, self._on_updated),
            self.manager.on(ServerEvent.NOTIFICATION_COUNT_UPDATED, self._on_count),
            self.manager.observe(LifecycleEvent.RECONNECTED, self._on_reconnected),
        ]
        await self.manager.subscriptions.subscribe_notifications()

    def stop(self) -> None:
        for cleanup in self._cleanups:
            cleanup()
        self._cleanups = []

    async def _on_reconnected(self, _payload: Any) -> None:
        await self.manager.subscriptions.subscribe_notifications()

    def _on_init(self, payload: Any) -> None:
        notifications = parse_notifications(payload)
        self.filter.admit_batch(notifications)
        self.store.replace_all(notifications)
        logger.debug("Notifications initialized", count=len(notifications))

    def _on_new(self, payload: Any) -> None:
        try:
            notification = parse_notification(payload)
        except ValidationError:
            return
        if not self.filter.admit(notification):
            return
        if self.store.add(notification):
            self.surface.present(notification)

    def _on_updated(self, payload: Any) -> None:
        try:
            notification = parse_notification(payload)
        except ValidationError:
            return
        self.store.apply_update(notification)

    def _on_count(self, payload: Any) -> None:
        count = payload.get("count") if isinstance(payload, dict) else payload
        if isinstance(count, int):
            self.store.set_unread_count(count)

    async def mark_read(self, notification_id: str) -> bool:
        """Optimistically mark read locally and tell the server."""
        self.store.mark_read(notification_id)
        return await self.manager.mark_notification_read(notification_id)
