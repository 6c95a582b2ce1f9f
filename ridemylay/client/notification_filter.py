"""
Deduplication and rate-limiting filter for inbound notifications.

Two bounded tables, both evicting oldest entries first:

* processed notification ids: a notification id seen once is never
  admitted again while it stays in the cache;
* per-entity last-seen timestamps: a second notification about the same
  entity inside the throttle window is dropped.
"""

import time
from collections import OrderedDict
from collections.abc import Callable, Iterable

from ..schemas.realtime import NotificationPayload
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ProcessedNotificationCache:
    """Bounded insertion-ordered id set."""

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, notification_id: str) -> None:
        if notification_id in self._ids:
            self._ids.move_to_end(notification_id)
            return
        self._ids[notification_id] = None
        while len(self._ids) > self.capacity:
            self._ids.popitem(last=False)

    def clear(self) -> None:
        self._ids.clear()


class NotificationFilter:
    """
    Admission control for notifications arriving from the socket.

    Args:
        window: Per-entity throttle window in seconds
        processed_capacity: Size of the processed id cache
        entity_capacity: Size of the per-entity timestamp table
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        window: float = 2.0,
        processed_capacity: int = 100,
        entity_capacity: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window = window
        self.entity_capacity = entity_capacity
        self.processed = ProcessedNotificationCache(processed_capacity)
        self._entity_seen: OrderedDict[str, float] = OrderedDict()
        self._clock = clock
        self.suppressed = 0

    def _touch_entity(self, entity_id: str, now: float) -> None:
        self._entity_seen[entity_id] = now
        self._entity_seen.move_to_end(entity_id)
        while len(self._entity_seen) > self.entity_capacity:
            self._entity_seen.popitem(last=False)

    def admit(self, notification: NotificationPayload) -> bool:
        """Return True if the notification should reach the store."""
        if notification.id in self.processed:
            self.suppressed += 1
            logger.debug("Duplicate notification suppressed", notification_id=notification.id)
            return False

        now = self._clock()
        last_seen = self._entity_seen.get(notification.entity_id)
        if last_seen is not None and now - last_seen < self.window:
            self.suppressed += 1
            logger.debug(
                "Notification throttled",
                notification_id=notification.id,
                entity_id=notification.entity_id,
                since_last=round(now - last_seen, 3),
            )
            return False

        self._touch_entity(notification.entity_id, now)
        self.processed.add(notification.id)
        return True

    def admit_batch(self, notifications: Iterable[NotificationPayload]) -> list[NotificationPayload]:
        """
        Filter an initial batch (notifications_init) by id only.

        Several unread notifications about the same entity are legitimate in
        a backlog, so the entity throttle does not apply here.
        """
        admitted = []
        for notification in notifications:
            if notification.id in self.processed:
                self.suppressed += 1
                continue
            self.processed.add(notification.id)
            admitted.append(notification)
        return admitted

    def reset(self) -> None:
        self.processed.clear()
        self._entity_seen.clear()
        self.suppressed = 0
