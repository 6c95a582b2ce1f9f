"""
Persistence layer: engine/session management and repositories.
"""

from dataclasses import dataclass

from .database import DatabaseManager
from .repositories import BetRepository, ChatRepository, MessageRepository, NotificationRepository, UserRepository


@dataclass
class RealtimeStore:
    """The repositories the gateway, bridge and API share."""

    users: UserRepository
    chats: ChatRepository
    bets: BetRepository
    messages: MessageRepository
    notifications: NotificationRepository

    @classmethod
    def from_database(cls, database: DatabaseManager) -> "RealtimeStore":
        session_maker = database.get_session_maker()
        return cls(
            users=UserRepository(session_maker),
            chats=ChatRepository(session_maker),
            bets=BetRepository(session_maker),
            messages=MessageRepository(session_maker),
            notifications=NotificationRepository(session_maker),
        )


__all__ = [
    "BetRepository",
    "ChatRepository",
    "DatabaseManager",
    "MessageRepository",
    "NotificationRepository",
    "RealtimeStore",
    "UserRepository",
]
