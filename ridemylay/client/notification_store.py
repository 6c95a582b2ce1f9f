"""
Client-side notification store the UI layer binds to.

Holds notifications newest first and the unread count. Ids are unique in
the store no matter how often a notification is delivered.
"""

from collections.abc import Callable, Iterable

from ..schemas.realtime import NotificationPayload
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

StoreListener = Callable[["NotificationStore"], None]


class NotificationStore:
    def __init__(self) -> None:
        self._notifications: list[NotificationPayload] = []
        self.unread_count = 0
        self.loading = True
        self._listeners: list[StoreListener] = []

    @property
    def notifications(self) -> list[NotificationPayload]:
        return list(self._notifications)

    def get(self, notification_id: str) -> NotificationPayload | None:
        return next((n for n in self._notifications if n.id == notification_id), None)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def cleanup() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return cleanup

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: listener isolation
                logger.error("Notification store listener failed", error=str(e), error_type=type(e).__name__)

    def _recount(self) -> None:
        self.unread_count = sum(1 for n in self._notifications if not n.read)

    def replace_all(self, notifications: Iterable[NotificationPayload]) -> None:
        """Replace the contents with an authoritative list (notifications_init)."""
        seen: set[str] = set()
        unique = []
        for notification in notifications:
            if notification.id in seen:
                continue
            seen.add(notification.id)
            unique.append(notification)
        self._notifications = unique
        self.loading = False
        self._recount()
        self._changed()

    def add(self, notification: NotificationPayload) -> bool:
        """Insert at the front. Returns False if the id is already present."""
        if self.get(notification.id) is not None:
            return False
        self._notifications.insert(0, notification)
        if not notification.read:
            self.unread_count += 1
        self._changed()
        return True

    def apply_update(self, notification: NotificationPayload) -> None:
        """Reconcile a server-side change (notification_updated) into the store."""
        for index, existing in enumerate(self._notifications):
            if existing.id == notification.id:
                self._notifications[index] = notification
                break
        else:
            return
        self._recount()
        self._changed()

    def mark_read(self, notification_id: str) -> bool:
        existing = self.get(notification_id)
        if existing is None or existing.read:
            return False
        self.apply_update(existing.model_copy(update={"read": True}))
        return True

    def mark_all_read(self) -> None:
        self._notifications = [n if n.read else n.model_copy(update={"read": True}) for n in self._notifications]
        self.unread_count = 0
        self._changed()

    def remove(self, notification_id: str) -> bool:
        before = len(self._notifications)
        self._notifications = [n for n in self._notifications if n.id != notification_id]
        if len(self._notifications) == before:
            return False
        self._recount()
        self._changed()
        return True

    def set_unread_count(self, count: int) -> None:
        """Server-reported unread total (notification_count_updated)."""
        self.unread_count = max(0, int(count))
        self._changed()

    def clear(self) -> None:
        self._notifications = []
        self.unread_count = 0
        self.loading = True
        self._changed()
