"""
Client socket service.

Typical wiring::

    manager = ConnectionManager(InMemoryTokenProvider(token))
    feed = NotificationFeed(manager)
    await feed.start()
    if await manager.ready():
        await manager.subscriptions.join_room(chat_id)
"""

from .connection_manager import ConnectionManager, InMemoryTokenProvider, TokenProvider
from .connection_state_machine import ConnectionState, ConnectionStatus
from .connection_status import ConnectionStatusIndicator, StatusBanner
from .event_dispatcher import EventDispatcher
from .notification_feed import NotificationFeed
from .notification_filter import NotificationFilter, ProcessedNotificationCache
from .notification_store import NotificationStore
from .notification_surface import NotificationSurface, deep_link
from .subscription_registry import SubscriptionRegistry, SubscriptionSet
from .transport import SocketIOTransport, Transport

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "ConnectionStatusIndicator",
    "EventDispatcher",
    "InMemoryTokenProvider",
    "NotificationFeed",
    "NotificationFilter",
    "NotificationStore",
    "NotificationSurface",
    "ProcessedNotificationCache",
    "SocketIOTransport",
    "StatusBanner",
    "SubscriptionRegistry",
    "SubscriptionSet",
    "TokenProvider",
    "Transport",
    "deep_link",
]
