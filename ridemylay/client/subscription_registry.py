"""
Subscription Registry for the client socket service.

Tracks which logical channels the client wants (the notifications channel,
chat rooms, bet topics) independently of the physical connection, and
re-announces them after every successful (re)connect.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..events import ClientEvent
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class Announcer(Protocol):
    """The slice of the Connection Manager the registry needs."""

    @property
    def is_connected(self) -> bool: ...

    async def emit(self, event: str, data: Any = None) -> bool: ...


@dataclass(frozen=True)
class SubscriptionSet:
    notifications_subscribed: bool = False
    chat_rooms: frozenset[str] = field(default_factory=frozenset)
    bet_topics: frozenset[str] = field(default_factory=frozenset)


class SubscriptionRegistry:
    """
    Wanted-set of subscriptions with immediate or deferred announcement.

    Intents recorded while connected are announced immediately; intents
    recorded while disconnected are only stored and reach the server through
    replay_all() once the connection is established.
    """

    def __init__(self, announcer: Announcer) -> None:
        self._announcer = announcer
        self._notifications = False
        self._chat_rooms: set[str] = set()
        self._bet_topics: set[str] = set()

    def snapshot(self) -> SubscriptionSet:
        return SubscriptionSet(
            notifications_subscribed=self._notifications,
            chat_rooms=frozenset(self._chat_rooms),
            bet_topics=frozenset(self._bet_topics),
        )

    async def _announce(self, event: str, data: Any = None) -> bool:
        if not self._announcer.is_connected:
            logger.debug("Subscription intent queued until connected", subscription_event=event)
            return False
        return await self._announcer.emit(event, data)

    async def subscribe_notifications(self) -> None:
        if self._notifications:
            return
        self._notifications = True
        await self._announce(ClientEvent.SUBSCRIBE_NOTIFICATIONS)

    async def unsubscribe_notifications(self) -> None:
        if not self._notifications:
            return
        self._notifications = False
        await self._announce(ClientEvent.UNSUBSCRIBE_NOTIFICATIONS)

    async def join_room(self, chat_id: str) -> None:
        if chat_id in self._chat_rooms:
            return
        self._chat_rooms.add(chat_id)
        await self._announce(ClientEvent.JOIN_CHAT, chat_id)

    async def leave_room(self, chat_id: str) -> None:
        if chat_id not in self._chat_rooms:
            return
        self._chat_rooms.discard(chat_id)
        await self._announce(ClientEvent.LEAVE_CHAT, chat_id)

    async def subscribe_bet(self, bet_id: str) -> None:
        if bet_id in self._bet_topics:
            return
        self._bet_topics.add(bet_id)
        await self._announce(ClientEvent.SUBSCRIBE_BET, {"betId": bet_id})

    async def unsubscribe_bet(self, bet_id: str) -> None:
        if bet_id not in self._bet_topics:
            return
        self._bet_topics.discard(bet_id)
        await self._announce(ClientEvent.UNSUBSCRIBE_BET, {"betId": bet_id})

    async def replay_all(self) -> int:
        """
        Re-announce every wanted subscription on a fresh connection.

        The wanted set is captured before the first await; anything added
        later was already announced by the call that added it.

        Returns:
            Number of announcements that were sent
        """
        announcements: list[tuple[str, Any]] = []
        if self._notifications:
            announcements.append((ClientEvent.SUBSCRIBE_NOTIFICATIONS, None))
        announcements.extend((ClientEvent.JOIN_CHAT, chat_id) for chat_id in sorted(self._chat_rooms))
        announcements.extend((ClientEvent.SUBSCRIBE_BET, {"betId": bet_id}) for bet_id in sorted(self._bet_topics))

        if not announcements:
            return 0

        results = await asyncio.gather(
            *(self._announcer.emit(event, data) for event, data in announcements), return_exceptions=True
        )
        sent = sum(1 for result in results if result is True)
        if sent != len(announcements):
            logger.warning("Subscription replay incomplete", sent=sent, expected=len(announcements))
        else:
            logger.info("Subscriptions replayed", count=sent)
        return sent

    def clear(self) -> None:
        self._notifications = False
        self._chat_rooms.clear()
        self._bet_topics.clear()
