"""
Async repositories over the RideMyLay tables.
"""

from .chat_repository import BetRepository, ChatRepository
from .message_repository import MessageRepository
from .notification_repository import NotificationRepository
from .user_repository import UserRepository

__all__ = ["BetRepository", "ChatRepository", "MessageRepository", "NotificationRepository", "UserRepository"]
