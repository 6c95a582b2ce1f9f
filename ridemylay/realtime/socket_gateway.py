"""
Socket.IO gateway for the realtime subsystem.

One AsyncNamespace handles the whole client event vocabulary. Every
connection is authenticated at handshake; after that the gateway owns the
online user directory, the explicit room membership table and the relays
between connections. Durable side effects go through the notification
bridge and never abort a handler.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import socketio
import socketio.exceptions
from pydantic import ValidationError as PydanticValidationError

from ..auth_utils import user_id_from_token
from ..config import AuthConfig, NotificationConfig
from ..events import AUTH_ERROR_PREFIX, ClientEvent, ServerEvent, bet_room, chat_room, user_room
from ..exceptions import AuthError, PersistenceError
from ..models.base import utcnow
from ..persistence import RealtimeStore
from ..schemas.realtime import (
    BetInteractionPayload,
    BetTopicPayload,
    ErrorPayload,
    MessagePayload,
    MessagesReadPayload,
    ReadNotificationPayload,
    TypingPayload,
    UserStatusPayload,
)
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from .notification_bridge import NotificationBridge
from .online_user_directory import OnlineUserDirectory
from .room_membership import RoomMembership

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionUser:
    user_id: str
    username: str


def _handshake_token(environ: dict[str, Any] | None, auth: Any) -> str | None:
    if isinstance(auth, dict) and auth.get("token"):
        return str(auth["token"])
    # Fall back to an Authorization header for non-browser clients
    header = (environ or {}).get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def _chat_id_from(data: Any) -> str | None:
    """join_chat/leave_chat/read_messages accept a bare id or {"chatId": ...}."""
    if isinstance(data, dict):
        data = data.get("chatId") or data.get("chat")
    if isinstance(data, str | int) and str(data):
        return str(data)
    return None


class SocketGateway(socketio.AsyncNamespace):
    """
    Server side of the realtime wire contract.

    Attributes:
        sessions: sid -> authenticated user, set at handshake
        directory: userId -> sid of the user's latest connection
        membership: explicit sid <-> room table mirroring enter_room/leave_room
        bridge: deliver-or-persist decisions for notifications
    """

    def __init__(
        self,
        store: RealtimeStore | None = None,
        namespace: str = "/",
        auth_config: AuthConfig | None = None,
        notification_config: NotificationConfig | None = None,
    ) -> None:
        super().__init__(namespace)
        self.store = store
        self.auth_config = auth_config
        self.sessions: dict[str, SessionUser] = {}
        self.directory = OnlineUserDirectory()
        self.membership = RoomMembership()
        self.bridge = NotificationBridge(store, self.directory, self, notification_config)

    def attach_store(self, store: RealtimeStore) -> None:
        """Bind the store once the database is up (the namespace is registered earlier)."""
        self.store = store
        self.bridge.store = store

    # Connection lifecycle

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        if self.store is None:
            raise socketio.exceptions.ConnectionRefusedError("Service unavailable")
        token = _handshake_token(environ, auth)
        try:
            user_id = user_id_from_token(token, self.auth_config)
        except AuthError as e:
            raise socketio.exceptions.ConnectionRefusedError(f"{AUTH_ERROR_PREFIX}: {e.message}") from e

        try:
            user = await self.store.users.get_user(user_id)
        except PersistenceError as e:
            # Not an auth failure; the client keeps retrying with backoff
            raise socketio.exceptions.ConnectionRefusedError("Service unavailable") from e
        if user is None:
            logger.warning("Handshake rejected", reason="unknown_user", user_id=user_id, sid=sid)
            raise socketio.exceptions.ConnectionRefusedError(f"{AUTH_ERROR_PREFIX}: User not found")

        # Directory and session are updated before any further await
        session = SessionUser(user_id=user.id, username=user.username)
        self.sessions[sid] = session
        replaced = self.directory.register(session.user_id, sid)
        logger.info("User connected", user_id=session.user_id, sid=sid, replaced_sid=replaced)

        await self._touch_presence(session.user_id)
        await self._broadcast_status(session, is_online=True)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        session = self.sessions.pop(sid, None)
        rooms = self.membership.leave_all(sid)
        if session is None:
            return
        removed = self.directory.unregister(session.user_id, sid)
        logger.info("User disconnected", user_id=session.user_id, sid=sid, reason=reason, rooms=len(rooms))
        if not removed:
            # A newer connection for this user is still registered
            return
        await self._touch_presence(session.user_id)
        await self._broadcast_status(session, is_online=False)

    async def _touch_presence(self, user_id: str) -> None:
        try:
            await self.store.users.touch_user(user_id)
        except PersistenceError as e:
            log_exception_once(logger, "warning", "Presence update failed", exc=e, user_id=user_id)

    async def _broadcast_status(self, session: SessionUser, is_online: bool) -> None:
        payload = UserStatusPayload(
            user_id=session.user_id,
            username=session.username,
            is_online=is_online,
            last_active=datetime.now(UTC),
        )
        await self.emit(ServerEvent.USER_STATUS_CHANGE, payload.to_wire())

    # Helpers

    def _session(self, sid: str) -> SessionUser | None:
        return self.sessions.get(sid)

    async def _emit_error(self, sid: str, event: str, message: str) -> None:
        await self.emit(ServerEvent.ERROR, ErrorPayload(event=event, message=message).to_wire(), to=sid)

    async def _join(self, sid: str, room: str) -> None:
        self.membership.join(sid, room)
        await self.enter_room(sid, room)

    async def _leave(self, sid: str, room: str) -> None:
        self.membership.leave(sid, room)
        await self.leave_room(sid, room)

    def present_user_ids(self, room: str) -> set[str]:
        """Users with at least one socket currently in room."""
        return {self.sessions[s].user_id for s in self.membership.members(room) if s in self.sessions}

    # Notification channel

    async def on_subscribe_notifications(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        if session is None:
            return
        await self._join(sid, user_room(session.user_id))
        try:
            unread = await self.store.notifications.list_unread(session.user_id)
        except PersistenceError as e:
            log_exception_once(logger, "error", "Unread notifications unavailable", exc=e, user_id=session.user_id)
            await self._emit_error(sid, ClientEvent.SUBSCRIBE_NOTIFICATIONS, "Failed to load notifications")
            return
        await self.emit(ServerEvent.NOTIFICATIONS_INIT, [n.to_payload() for n in unread], to=sid)
        logger.debug("Notifications subscribed", user_id=session.user_id, sid=sid, unread=len(unread))

    async def on_unsubscribe_notifications(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        if session is None:
            return
        await self._leave(sid, user_room(session.user_id))

    async def on_read_notification(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        if session is None:
            return
        try:
            request = ReadNotificationPayload.model_validate(data)
        except PydanticValidationError:
            await self._emit_error(sid, ClientEvent.READ_NOTIFICATION, "notificationId is required")
            return
        try:
            notification = await self.store.notifications.mark_read(request.notification_id, session.user_id)
        except PersistenceError as e:
            log_exception_once(
                logger, "error", "Mark notification read failed", exc=e, notification_id=request.notification_id
            )
            await self._emit_error(sid, ClientEvent.READ_NOTIFICATION, "Failed to mark notification as read")
            return
        if notification is None:
            await self._emit_error(sid, ClientEvent.READ_NOTIFICATION, "Notification not found")
            return
        await self.bridge.push_read_state(session.user_id, notification)

    # Chat rooms

    async def on_join_chat(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        chat_id = _chat_id_from(data)
        if session is None or chat_id is None:
            return
        await self._join(sid, chat_room(chat_id))
        logger.debug("Joined chat", user_id=session.user_id, chat_id=chat_id)

    async def on_leave_chat(self, sid: str, data: Any = None) -> None:
        chat_id = _chat_id_from(data)
        if self._session(sid) is None or chat_id is None:
            return
        await self._leave(sid, chat_room(chat_id))

    async def on_typing(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        if session is None:
            return
        try:
            typing = TypingPayload.model_validate(data)
        except PydanticValidationError:
            return
        relay = typing.model_copy(update={"user_id": session.user_id, "username": session.username})
        await self.emit(ServerEvent.USER_TYPING, relay.to_wire(), room=chat_room(typing.chat_id), skip_sid=sid)

    async def on_read_messages(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        chat_id = _chat_id_from(data)
        if session is None or chat_id is None:
            return
        try:
            await self.store.messages.mark_chat_read(chat_id, session.user_id)
        except PersistenceError as e:
            log_exception_once(logger, "error", "Read receipts not persisted", exc=e, chat_id=chat_id)
        await self.emit(
            ServerEvent.MESSAGES_READ,
            MessagesReadPayload(chat_id=chat_id, user_id=session.user_id).to_wire(),
            room=chat_room(chat_id),
            skip_sid=sid,
        )

    async def on_new_message(self, sid: str, data: Any = None) -> None:
        """
        Relay a chat message and notify absent participants.

        Messages already created over REST carry an _id and are relayed as
        is. A message without one is stored here first; if that primary
        write fails the sender gets an error and nothing is relayed.
        """
        session = self._session(sid)
        if session is None:
            return
        if isinstance(data, dict) and "chat" not in data and "chatId" in data:
            data = {**data, "chat": data["chatId"]}
        try:
            message = MessagePayload.model_validate(data)
        except PydanticValidationError:
            await self._emit_error(sid, ClientEvent.NEW_MESSAGE, "Invalid message")
            return

        try:
            participant_ids = await self.store.chats.get_participant_ids(message.chat)
        except PersistenceError:
            await self._emit_error(sid, ClientEvent.NEW_MESSAGE, "Failed to send message")
            return
        if session.user_id not in participant_ids:
            logger.warning("Message from non-participant rejected", user_id=session.user_id, chat_id=message.chat)
            await self._emit_error(sid, ClientEvent.NEW_MESSAGE, "Not a participant in this chat")
            return

        room = chat_room(message.chat)
        # Membership as of arrival decides who is notified
        present = self.present_user_ids(room)

        if message.id is None:
            try:
                stored = await self.store.messages.create_message(
                    chat_id=message.chat,
                    sender_id=session.user_id,
                    content=message.content,
                    attachments=[a.to_wire() for a in message.attachments],
                )
            except PersistenceError:
                await self._emit_error(sid, ClientEvent.NEW_MESSAGE, "Failed to send message")
                return
            payload = stored.to_payload()
        else:
            payload = message.model_copy(update={"sender": session.user_id}).to_wire()

        await self.emit(ServerEvent.MESSAGE_RECEIVED, payload, room=room, skip_sid=sid)
        await self.bridge.notify_new_message(message.chat, session.user_id, session.username, payload, present)

    # Bets

    async def on_subscribe_bet(self, sid: str, data: Any = None) -> None:
        if self._session(sid) is None:
            return
        try:
            topic = BetTopicPayload.model_validate(data)
        except PydanticValidationError:
            return
        await self._join(sid, bet_room(topic.bet_id))

    async def on_unsubscribe_bet(self, sid: str, data: Any = None) -> None:
        if self._session(sid) is None:
            return
        try:
            topic = BetTopicPayload.model_validate(data)
        except PydanticValidationError:
            return
        await self._leave(sid, bet_room(topic.bet_id))

    async def on_bet_interaction(self, sid: str, data: Any = None) -> None:
        session = self._session(sid)
        if session is None:
            return
        try:
            interaction = BetInteractionPayload.model_validate(data)
        except PydanticValidationError:
            await self._emit_error(sid, ClientEvent.BET_INTERACTION, "Invalid bet interaction")
            return
        interaction = interaction.model_copy(update={"user_id": session.user_id})
        await self.bridge.notify_bet_interaction(
            interaction.bet_id, session.user_id, session.username, interaction.type
        )
        await self.emit(ServerEvent.BET_UPDATE, interaction.to_wire(), room=bet_room(interaction.bet_id))

    # Liveness

    async def on_ping(self, sid: str, data: Any = None) -> None:
        await self.emit(ServerEvent.PONG, {"timestamp": utcnow().isoformat()}, to=sid)

    async def on_heartbeat(self, sid: str, data: Any = None) -> None:
        await self.emit(ServerEvent.HEARTBEAT, {"timestamp": utcnow().isoformat()}, to=sid)

    def get_stats(self) -> dict[str, Any]:
        return {
            "sessions": len(self.sessions),
            "online_users": len(self.directory),
            "rooms": len(self.membership.room_members),
        }
