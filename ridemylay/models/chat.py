"""
Chat and chat participant rows.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy models are data classes, no instance methods needed

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class Chat(Base):
    """A direct or group conversation."""

    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_group_chat: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ChatParticipant(Base):
    """Membership of a user in a chat."""

    __tablename__ = "chat_participants"

    chat_id: Mapped[str] = mapped_column(String(64), ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
