"""
SQLAlchemy models for RideMyLay realtime.

Importing this package registers every table on the shared Base metadata.
"""

from .base import Base, metadata
from .bet import Bet
from .chat import Chat, ChatParticipant
from .message import Message, MessageAttachment, MessageRead
from .notification import Notification
from .user import User

__all__ = [
    "Base",
    "Bet",
    "Chat",
    "ChatParticipant",
    "Message",
    "MessageAttachment",
    "MessageRead",
    "Notification",
    "User",
    "metadata",
]
