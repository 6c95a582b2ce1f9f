"""
Notification retention for RideMyLay realtime.

Notifications expire after NotificationConfig.retention_days. A background
task purges expired rows at a fixed interval while the server runs.
"""

import asyncio
from datetime import timedelta

from ..config import NotificationConfig
from ..exceptions import PersistenceError
from ..models.base import utcnow
from ..persistence import NotificationRepository
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class NotificationRetentionTask:
    """Periodically deletes notifications older than the retention period."""

    def __init__(self, notifications: NotificationRepository, config: NotificationConfig | None = None):
        self.notifications = notifications
        self.config = config or NotificationConfig()
        self.is_running = False
        self.purged_total = 0
        self._task: asyncio.Task | None = None

    async def run_once(self) -> int:
        """
        Purge expired notifications now.

        Returns:
            int: Number of notifications deleted
        """
        cutoff = utcnow() - timedelta(days=self.config.retention_days)
        purged = await self.notifications.purge_older_than(cutoff)
        self.purged_total += purged
        if purged:
            logger.info("Expired notifications purged", purged=purged, cutoff=cutoff.isoformat())
        return purged

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Notification retention task is already running")
            return
        self.is_running = True
        self._task = asyncio.create_task(self._loop(), name="notifications/retention")
        logger.info("Notification retention task started", interval=self.config.purge_interval_seconds)

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.is_running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Notification retention task stopped", purged_total=self.purged_total)

    async def _loop(self) -> None:
        while self.is_running:
            try:
                await self.run_once()
            except PersistenceError:
                # Already logged by the repository; try again next interval
                pass
            await asyncio.sleep(self.config.purge_interval_seconds)
