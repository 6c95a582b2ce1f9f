"""
Socket event vocabulary and room naming.

Event names are the wire contract shared with browser clients and must not
change.
"""

from enum import StrEnum


class ClientEvent(StrEnum):
    """Events emitted by clients and handled by the gateway."""

    SUBSCRIBE_NOTIFICATIONS = "subscribe_notifications"
    UNSUBSCRIBE_NOTIFICATIONS = "unsubscribe_notifications"
    JOIN_CHAT = "join_chat"
    LEAVE_CHAT = "leave_chat"
    TYPING = "typing"
    READ_MESSAGES = "read_messages"
    READ_NOTIFICATION = "read_notification"
    NEW_MESSAGE = "new_message"
    BET_INTERACTION = "bet_interaction"
    SUBSCRIBE_BET = "subscribe_bet"
    UNSUBSCRIBE_BET = "unsubscribe_bet"
    PING = "ping"
    HEARTBEAT = "heartbeat"


class ServerEvent(StrEnum):
    """Events emitted by the gateway to clients."""

    NOTIFICATIONS_INIT = "notifications_init"
    NEW_NOTIFICATION = "new_notification"
    NOTIFICATION_UPDATED = "notification_updated"
    NOTIFICATION_COUNT_UPDATED = "notification_count_updated"
    NEW_MESSAGE = "new_message"
    MESSAGE_RECEIVED = "message_received"
    USER_TYPING = "user_typing"
    MESSAGES_READ = "messages_read"
    USER_STATUS_CHANGE = "user_status_change"
    BET_UPDATE = "bet_update"
    PONG = "pong"
    HEARTBEAT = "heartbeat"
    ERROR = "error"


class LifecycleEvent(StrEnum):
    """Process-wide client connection events observed by the UI layer."""

    CONNECTED = "socket_connected"
    DISCONNECTED = "socket_disconnected"
    RECONNECTED = "socket_reconnected"
    CONNECTION_FAILED = "socket_connection_failed"


AUTH_ERROR_PREFIX = "Authentication error"


def chat_room(chat_id: str) -> str:
    return f"chat:{chat_id}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def bet_room(bet_id: str) -> str:
    return f"bet:{bet_id}"
