"""
Message persistence and append-only read receipts.
"""

from typing import Any

from sqlalchemy import exists, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Message, MessageAttachment, MessageRead
from ...models.base import new_id, utcnow
from ...structured_logging.enhanced_logging_config import get_logger
from .base import BaseRepository

logger = get_logger(__name__)


def _attachment_from_payload(payload: dict[str, Any]) -> MessageAttachment:
    bet_data = payload.get("betData") or payload.get("bet_data") or {}
    return MessageAttachment(
        type=payload["type"],
        url=payload.get("url"),
        bet_id=payload.get("betId") or payload.get("bet_id"),
        bet_status=bet_data.get("status"),
        bet_odds=bet_data.get("odds"),
        bet_stake=bet_data.get("stake"),
    )


class MessageRepository(BaseRepository):
    table = "messages"

    async def create_message(
        self,
        chat_id: str,
        sender_id: str,
        content: str,
        attachments: list[dict[str, Any]] | None = None,
        message_id: str | None = None,
    ) -> Message:
        try:
            async with self._session_maker() as session:
                message = Message(
                    id=message_id or new_id(),
                    chat_id=chat_id,
                    sender_id=sender_id,
                    content=content,
                    created_at=utcnow(),
                    attachments=[_attachment_from_payload(a) for a in attachments or []],
                    reads=[],
                )
                session.add(message)
                await session.commit()
                return message
        except (SQLAlchemyError, OSError) as e:
            self._fail("create_message", e, chat_id=chat_id, sender_id=sender_id)

    async def get_message(self, message_id: str) -> Message | None:
        try:
            async with self._session_maker() as session:
                return await session.get(Message, message_id)
        except (SQLAlchemyError, OSError) as e:
            self._fail("get_message", e, message_id=message_id)

    async def _insert_reads(self, session: AsyncSession, message_ids: list[str], user_id: str) -> int:
        if not message_ids:
            return 0
        rows = [{"message_id": mid, "user_id": user_id, "read_at": utcnow()} for mid in message_ids]
        insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
        # Existing (message, user) pairs are left untouched so readBy only grows
        stmt = insert(MessageRead).values(rows).on_conflict_do_nothing(index_elements=["message_id", "user_id"])
        result = await session.execute(stmt)
        return max(result.rowcount or 0, 0)

    async def mark_message_read(self, message_id: str, user_id: str) -> bool:
        """Record that user_id read one message. Returns True if newly recorded."""
        try:
            async with self._session_maker() as session:
                added = await self._insert_reads(session, [message_id], user_id)
                await session.commit()
                return added > 0
        except (SQLAlchemyError, OSError) as e:
            self._fail("mark_message_read", e, message_id=message_id, user_id=user_id)

    async def mark_chat_read(self, chat_id: str, user_id: str) -> int:
        """
        Add user_id to readBy of every message in the chat they have not read.

        The reader's own messages are skipped. Returns the number of
        receipts added.
        """
        try:
            async with self._session_maker() as session:
                already_read = exists().where(MessageRead.message_id == Message.id, MessageRead.user_id == user_id)
                result = await session.execute(
                    select(Message.id).where(
                        Message.chat_id == chat_id,
                        Message.sender_id != user_id,
                        ~already_read,
                    )
                )
                unread_ids = list(result.scalars().all())
                added = await self._insert_reads(session, unread_ids, user_id)
                await session.commit()
                logger.debug("Chat messages marked read", chat_id=chat_id, user_id=user_id, added=added)
                return added
        except (SQLAlchemyError, OSError) as e:
            self._fail("mark_chat_read", e, chat_id=chat_id, user_id=user_id)

    async def get_read_by(self, message_id: str) -> list[str]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MessageRead.user_id)
                    .where(MessageRead.message_id == message_id)
                    .order_by(MessageRead.read_at, MessageRead.user_id)
                )
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            self._fail("get_read_by", e, message_id=message_id)
