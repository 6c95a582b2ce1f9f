"""
Notification persistence: creation, listing, read-state transitions and
retention purge.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ...models import Notification
from ...models.base import new_id, utcnow
from ...structured_logging.enhanced_logging_config import get_logger
from .base import BaseRepository

logger = get_logger(__name__)


class NotificationRepository(BaseRepository):
    """Repository for the notifications table."""

    table = "notifications"

    async def create_notification(
        self,
        recipient_id: str,
        sender_id: str,
        type: str,  # pylint: disable=redefined-builtin  # Reason: mirrors the wire field
        entity_type: str,
        entity_id: str,
        content: str,
        metadata: dict[str, Any] | None = None,
        created_at: datetime | None = None,
    ) -> Notification:
        try:
            async with self._session_maker() as session:
                notification = Notification(
                    id=new_id(),
                    recipient_id=recipient_id,
                    sender_id=sender_id,
                    type=str(type),
                    entity_type=str(entity_type),
                    entity_id=entity_id,
                    read=False,
                    content=content,
                    extra=metadata or {},
                    created_at=created_at or utcnow(),
                )
                session.add(notification)
                await session.commit()
                logger.debug(
                    "Notification created",
                    notification_id=notification.id,
                    recipient_id=recipient_id,
                    notification_type=str(type),
                )
                return notification
        except (SQLAlchemyError, OSError) as e:
            self._fail("create_notification", e, recipient_id=recipient_id)

    async def list_notifications(self, user_id: str, limit: int = 30) -> list[Notification]:
        """Latest notifications for a user, newest first."""
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Notification)
                    .where(Notification.recipient_id == user_id)
                    .order_by(Notification.created_at.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            self._fail("list_notifications", e, user_id=user_id)

    async def list_unread(self, user_id: str) -> list[Notification]:
        """All unread notifications for a user, newest first."""
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Notification)
                    .where(Notification.recipient_id == user_id, Notification.read.is_(False))
                    .order_by(Notification.created_at.desc())
                )
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            self._fail("list_unread", e, user_id=user_id)

    async def count_unread(self, user_id: str) -> int:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(func.count())
                    .select_from(Notification)
                    .where(Notification.recipient_id == user_id, Notification.read.is_(False))
                )
                return int(result.scalar_one())
        except (SQLAlchemyError, OSError) as e:
            self._fail("count_unread", e, user_id=user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> Notification | None:
        """Mark one of user_id's notifications read. None if it is not theirs or missing."""
        try:
            async with self._session_maker() as session:
                notification = await session.get(Notification, notification_id)
                if notification is None or notification.recipient_id != user_id:
                    return None
                notification.read = True
                await session.commit()
                return notification
        except (SQLAlchemyError, OSError) as e:
            self._fail("mark_read", e, notification_id=notification_id, user_id=user_id)

    async def mark_all_read(self, user_id: str) -> int:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    update(Notification)
                    .where(Notification.recipient_id == user_id, Notification.read.is_(False))
                    .values(read=True)
                )
                await session.commit()
                return max(result.rowcount or 0, 0)
        except (SQLAlchemyError, OSError) as e:
            self._fail("mark_all_read", e, user_id=user_id)

    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    delete(Notification).where(
                        Notification.id == notification_id, Notification.recipient_id == user_id
                    )
                )
                await session.commit()
                return bool(result.rowcount)
        except (SQLAlchemyError, OSError) as e:
            self._fail("delete_notification", e, notification_id=notification_id, user_id=user_id)

    async def purge_older_than(self, cutoff: datetime) -> int:
        """Delete notifications created before cutoff (naive UTC). Returns rows removed."""
        try:
            async with self._session_maker() as session:
                result = await session.execute(delete(Notification).where(Notification.created_at < cutoff))
                await session.commit()
                return max(result.rowcount or 0, 0)
        except (SQLAlchemyError, OSError) as e:
            self._fail("purge_older_than", e, cutoff=cutoff.isoformat())
