"""
Chat message rows, their attachments and read receipts.

Read receipts live in message_reads keyed on (message_id, user_id): a user
is recorded as having read a message at most once and rows are never
removed while the message exists.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy models are data classes, no instance methods needed

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_id, utcnow


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_chat_created", "chat_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    chat_id: Mapped[str] = mapped_column(String(64), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)

    attachments: Mapped[list["MessageAttachment"]] = relationship(
        back_populates="message", cascade="all, delete-orphan", lazy="selectin", order_by="MessageAttachment.id"
    )
    reads: Mapped[list["MessageRead"]] = relationship(cascade="all, delete-orphan", lazy="selectin")

    @property
    def read_by(self) -> list[str]:
        return [read.user_id for read in self.reads]

    def to_payload(self) -> dict[str, Any]:
        """Wire representation used by message_received and the REST layer."""
        return {
            "_id": self.id,
            "chat": self.chat_id,
            "sender": self.sender_id,
            "content": self.content,
            "attachments": [attachment.to_payload() for attachment in self.attachments],
            "readBy": self.read_by,
            "isEdited": self.is_edited,
            "createdAt": self.created_at.isoformat(),
        }


class MessageAttachment(Base):
    """Image, video or bet reference attached to a message."""

    __tablename__ = "message_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bet_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Snapshot of the referenced bet at share time
    bet_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bet_odds: Mapped[float | None] = mapped_column(Float, nullable=True)
    bet_stake: Mapped[float | None] = mapped_column(Float, nullable=True)

    message: Mapped[Message] = relationship(back_populates="attachments")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.url is not None:
            payload["url"] = self.url
        if self.bet_id is not None:
            payload["betId"] = self.bet_id
            payload["betData"] = {"status": self.bet_status, "odds": self.bet_odds, "stake": self.bet_stake}
        return payload


class MessageRead(Base):
    __tablename__ = "message_reads"

    message_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    read_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)
