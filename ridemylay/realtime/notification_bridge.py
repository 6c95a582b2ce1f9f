"""
Notification/Message persistence bridge.

Decides, for each recipient of a message or bet interaction, whether a
durable notification is created and whether it is also pushed live.
Notification creation and live push are best-effort side effects: a
PersistenceError is logged and swallowed here, never raised into a socket
handler.
"""

import asyncio
from collections.abc import Iterable
from typing import Any, Protocol

from ..config import NotificationConfig
from ..events import ServerEvent, user_room
from ..exceptions import PersistenceError
from ..models import Notification
from ..persistence import RealtimeStore
from ..schemas.realtime import EntityType, NotificationCountPayload, NotificationType
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from .online_user_directory import OnlineUserDirectory

logger = get_logger(__name__)

# Past tense used in "<user> <verb> your bet"
INTERACTION_VERBS = {
    "like": "liked",
    "comment": "commented on",
    "share": "shared",
    "ride": "rode",
    "hedge": "hedged",
}


class RoomEmitter(Protocol):
    async def emit(self, event: str, data: Any = None, room: str | None = None, **kwargs: Any) -> Any: ...


class NotificationBridge:
    def __init__(
        self,
        store: RealtimeStore | None,
        directory: OnlineUserDirectory,
        emitter: RoomEmitter,
        config: NotificationConfig | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.emitter = emitter
        self.config = config or NotificationConfig()

    async def deliver(
        self,
        recipient_id: str,
        sender_id: str,
        notification_type: NotificationType,
        entity_type: EntityType,
        entity_id: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> Notification | None:
        """
        Persist a notification and push it if the recipient is online.

        Returns:
            The stored notification, or None if it could not be persisted
        """
        try:
            notification = await self.store.notifications.create_notification(
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=notification_type,
                entity_type=entity_type,
                entity_id=entity_id,
                content=content,
                metadata=metadata,
            )
        except PersistenceError as e:
            log_exception_once(
                logger, "error", "Notification not persisted", exc=e, recipient_id=recipient_id, entity_id=entity_id
            )
            return None

        if self.directory.is_online(recipient_id):
            await self.emitter.emit(ServerEvent.NEW_NOTIFICATION, notification.to_payload(), room=user_room(recipient_id))
        return notification

    async def notify_new_message(
        self,
        chat_id: str,
        sender_id: str,
        sender_name: str,
        message: dict[str, Any],
        present_user_ids: Iterable[str],
    ) -> list[Notification]:
        """
        Notify every chat participant who is not in the live chat room.

        present_user_ids is the room membership observed when the message
        arrived; the sender never receives a notification.
        """
        present = set(present_user_ids)
        try:
            chat = await self.store.chats.get_chat(chat_id)
            participant_ids = await self.store.chats.get_participant_ids(chat_id)
        except PersistenceError as e:
            log_exception_once(logger, "error", "Chat lookup failed, no message notifications", exc=e, chat_id=chat_id)
            return []
        if chat is None:
            logger.warning("Message for unknown chat, no notifications created", chat_id=chat_id)
            return []

        if chat.is_group_chat and chat.name:
            content = f"New message in {chat.name}"
        else:
            content = f"New message from {sender_name}"
        metadata = {
            "messageId": message.get("_id"),
            "preview": str(message.get("content") or "")[: self.config.preview_length],
        }

        recipients = [uid for uid in participant_ids if uid != sender_id and uid not in present]
        results = await asyncio.gather(
            *(
                self.deliver(uid, sender_id, NotificationType.MESSAGE, EntityType.CHAT, chat_id, content, metadata)
                for uid in recipients
            )
        )
        created = [notification for notification in results if notification is not None]
        logger.debug(
            "Message notifications processed",
            chat_id=chat_id,
            recipients=len(recipients),
            created=len(created),
            present=len(present),
        )
        return created

    async def notify_bet_interaction(
        self, bet_id: str, actor_id: str, actor_name: str, interaction_type: str
    ) -> Notification | None:
        """
        Notify a bet's owner that someone interacted with it.

        Shared by the socket gateway and REST handlers (e.g. like toggles).
        Interacting with one's own bet creates nothing.
        """
        try:
            owner_id = await self.store.bets.get_bet_owner(bet_id)
        except PersistenceError as e:
            log_exception_once(logger, "error", "Bet owner lookup failed", exc=e, bet_id=bet_id)
            return None
        if owner_id is None or owner_id == actor_id:
            return None

        verb = INTERACTION_VERBS.get(interaction_type, f"{interaction_type}d")
        return await self.deliver(
            owner_id,
            actor_id,
            NotificationType.BET_INTERACTION,
            EntityType.BET,
            bet_id,
            f"{actor_name} {verb} your bet",
            {"interactionType": interaction_type},
        )

    async def push_read_state(self, user_id: str, notification: Notification | None = None) -> None:
        """Tell every connection of user_id about a read-state change."""
        room = user_room(user_id)
        if notification is not None:
            await self.emitter.emit(ServerEvent.NOTIFICATION_UPDATED, notification.to_payload(), room=room)
        try:
            count = await self.store.notifications.count_unread(user_id)
        except PersistenceError as e:
            log_exception_once(logger, "error", "Unread count unavailable", exc=e, user_id=user_id)
            return
        payload = NotificationCountPayload(count=count).to_wire()
        await self.emitter.emit(ServerEvent.NOTIFICATION_COUNT_UPDATED, payload, room=room)
