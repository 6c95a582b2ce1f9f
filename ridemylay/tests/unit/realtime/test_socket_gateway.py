"""
Tests for the Socket.IO gateway against an in-memory store.

Socket.IO room operations and emits are replaced with AsyncMocks so the
handlers can be driven directly.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import socketio

from ridemylay.auth_utils import create_access_token
from ridemylay.events import ServerEvent
from ridemylay.exceptions import PersistenceError
from ridemylay.models.base import utcnow
from ridemylay.realtime.socket_gateway import SocketGateway


def emitted(gateway, event):
    """(data, kwargs) for every emit of event."""
    return [(call.args[1] if len(call.args) > 1 else None, call.kwargs) for call in gateway.emit.await_args_list
            if call.args[0] == event]


@pytest_asyncio.fixture
async def gateway(store, auth_config, notification_config):
    gw = SocketGateway(store, auth_config=auth_config, notification_config=notification_config)
    gw.emit = AsyncMock()
    gw.enter_room = AsyncMock()
    gw.leave_room = AsyncMock()
    return gw


@pytest_asyncio.fixture
async def users(store):
    await store.users.create_user("sam", user_id="sam")
    await store.users.create_user("alice", user_id="alice")
    await store.users.create_user("bob", user_id="bob")
    await store.users.create_user("carol", user_id="carol")
    await store.chats.create_chat(["sam", "alice", "bob"], chat_id="c1")
    return ["sam", "alice", "bob", "carol"]


async def connect(gateway, auth_config, sid, user_id):
    token = create_access_token({"sub": user_id}, auth_config=auth_config)
    await gateway.on_connect(sid, {}, {"token": token})


class TestHandshake:
    @pytest.mark.asyncio
    async def test_valid_token_registers_user_and_broadcasts_presence(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-sam", "sam")

        assert gateway.directory.sid_for("sam") == "sid-sam"
        assert gateway.sessions["sid-sam"].username == "sam"
        status = emitted(gateway, ServerEvent.USER_STATUS_CHANGE)
        assert len(status) == 1
        data, kwargs = status[0]
        assert data["userId"] == "sam"
        assert data["username"] == "sam"
        assert data["isOnline"] is True
        assert kwargs == {}

    @pytest.mark.asyncio
    async def test_missing_token_is_refused(self, gateway, users):
        with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc_info:
            await gateway.on_connect("sid-x", {}, None)

        assert exc_info.value.error_args["message"].startswith("Authentication error")
        assert len(gateway.directory) == 0
        gateway.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_token_is_refused(self, gateway, users):
        with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc_info:
            await gateway.on_connect("sid-x", {}, {"token": "not-a-jwt"})

        assert exc_info.value.error_args["message"] == "Authentication error: Invalid token"

    @pytest.mark.asyncio
    async def test_token_for_unknown_user_is_refused(self, gateway, users, auth_config):
        with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc_info:
            await connect(gateway, auth_config, "sid-x", "ghost")

        assert exc_info.value.error_args["message"] == "Authentication error: User not found"

    @pytest.mark.asyncio
    async def test_bearer_header_is_accepted(self, gateway, users, auth_config):
        token = create_access_token({"sub": "bob"}, auth_config=auth_config)

        await gateway.on_connect("sid-bob", {"HTTP_AUTHORIZATION": f"Bearer {token}"})

        assert gateway.directory.is_online("bob")

    @pytest.mark.asyncio
    async def test_store_failure_is_not_an_auth_error(self, gateway, users, auth_config):
        gateway.store.users.get_user = AsyncMock(side_effect=PersistenceError("db down", operation="get_user"))

        with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc_info:
            await connect(gateway, auth_config, "sid-sam", "sam")

        assert not exc_info.value.error_args["message"].startswith("Authentication error")


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_removes_user_and_broadcasts_offline(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")
        await gateway.on_join_chat("sid-bob", "c1")

        await gateway.on_disconnect("sid-bob", "client disconnect")

        assert not gateway.directory.is_online("bob")
        assert gateway.membership.members("chat:c1") == set()
        data, _ = emitted(gateway, ServerEvent.USER_STATUS_CHANGE)[-1]
        assert data["isOnline"] is False

    @pytest.mark.asyncio
    async def test_disconnect_of_replaced_connection_keeps_user_online(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-old", "bob")
        await connect(gateway, auth_config, "sid-new", "bob")
        gateway.emit.reset_mock()

        await gateway.on_disconnect("sid-old")

        assert gateway.directory.sid_for("bob") == "sid-new"
        assert emitted(gateway, ServerEvent.USER_STATUS_CHANGE) == []

    @pytest.mark.asyncio
    async def test_disconnect_of_unknown_sid_is_noop(self, gateway):
        await gateway.on_disconnect("never-connected")

        gateway.emit.assert_not_called()


class TestNotificationChannel:
    @pytest.mark.asyncio
    async def test_subscribe_joins_user_room_and_sends_unread(self, gateway, users, auth_config, store):
        earlier = utcnow() - timedelta(minutes=5)
        first = await store.notifications.create_notification(
            "bob", "sam", "message", "chat", "c1", "first", created_at=earlier
        )
        second = await store.notifications.create_notification("bob", "sam", "message", "chat", "c1", "second")
        read = await store.notifications.create_notification("bob", "sam", "message", "chat", "c1", "read")
        await store.notifications.mark_read(read.id, "bob")
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_subscribe_notifications("sid-bob")

        gateway.enter_room.assert_awaited_once_with("sid-bob", "user:bob")
        data, kwargs = emitted(gateway, ServerEvent.NOTIFICATIONS_INIT)[0]
        assert kwargs == {"to": "sid-bob"}
        assert [n["_id"] for n in data] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_subscribe_failure_emits_error(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")
        gateway.store.notifications.list_unread = AsyncMock(side_effect=PersistenceError("down", operation="x"))

        await gateway.on_subscribe_notifications("sid-bob")

        data, kwargs = emitted(gateway, ServerEvent.ERROR)[0]
        assert data["event"] == "subscribe_notifications"
        assert kwargs == {"to": "sid-bob"}

    @pytest.mark.asyncio
    async def test_unsubscribe_leaves_user_room(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")
        await gateway.on_subscribe_notifications("sid-bob")

        await gateway.on_unsubscribe_notifications("sid-bob")

        gateway.leave_room.assert_awaited_once_with("sid-bob", "user:bob")
        assert not gateway.membership.is_member("sid-bob", "user:bob")

    @pytest.mark.asyncio
    async def test_read_notification_reconciles_every_tab(self, gateway, users, auth_config, store):
        notification = await store.notifications.create_notification("bob", "sam", "message", "chat", "c1", "x")
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_read_notification("sid-bob", {"notificationId": notification.id})

        updated, kwargs = emitted(gateway, ServerEvent.NOTIFICATION_UPDATED)[0]
        assert updated["_id"] == notification.id
        assert updated["read"] is True
        assert kwargs == {"room": "user:bob"}
        count, kwargs = emitted(gateway, ServerEvent.NOTIFICATION_COUNT_UPDATED)[0]
        assert count == {"count": 0}
        assert kwargs == {"room": "user:bob"}

    @pytest.mark.asyncio
    async def test_read_notification_of_someone_else_is_rejected(self, gateway, users, auth_config, store):
        notification = await store.notifications.create_notification("alice", "sam", "message", "chat", "c1", "x")
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_read_notification("sid-bob", {"notificationId": notification.id})

        assert emitted(gateway, ServerEvent.ERROR)[0][0]["message"] == "Notification not found"
        assert (await store.notifications.count_unread("alice")) == 1


class TestMessageRelay:
    @pytest.mark.asyncio
    async def test_present_member_gets_live_event_absent_member_gets_notification(
        self, gateway, users, auth_config, store
    ):
        """Scenario: alice offline, bob present in chat room c1, a message arrives."""
        await connect(gateway, auth_config, "sid-sam", "sam")
        await connect(gateway, auth_config, "sid-bob", "bob")
        await gateway.on_join_chat("sid-bob", "c1")
        gateway.emit.reset_mock()

        await gateway.on_new_message("sid-sam", {"chat": "c1", "content": "hi"})

        # Verify live relay to the room, excluding the sender
        relays = emitted(gateway, ServerEvent.MESSAGE_RECEIVED)
        assert len(relays) == 1
        message, kwargs = relays[0]
        assert kwargs == {"room": "chat:c1", "skip_sid": "sid-sam"}
        assert message["content"] == "hi"
        assert message["sender"] == "sam"

        # Verify durable notification only for the absent participant
        alice_notifications = await store.notifications.list_notifications("alice")
        assert len(alice_notifications) == 1
        assert alice_notifications[0].content == "New message from sam"
        assert alice_notifications[0].entity_id == "c1"
        assert alice_notifications[0].extra["messageId"] == message["_id"]
        assert await store.notifications.list_notifications("bob") == []
        assert await store.notifications.list_notifications("sam") == []

        # Alice has no connection, so nothing is pushed
        assert emitted(gateway, ServerEvent.NEW_NOTIFICATION) == []

    @pytest.mark.asyncio
    async def test_online_member_elsewhere_gets_pushed_notification(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-sam", "sam")
        await connect(gateway, auth_config, "sid-alice", "alice")
        gateway.emit.reset_mock()

        await gateway.on_new_message("sid-sam", {"chat": "c1", "content": "hi"})

        pushes = emitted(gateway, ServerEvent.NEW_NOTIFICATION)
        rooms = sorted(kwargs["room"] for _, kwargs in pushes)
        assert rooms == ["user:alice"]

    @pytest.mark.asyncio
    async def test_message_is_persisted_with_attachments(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-sam", "sam")

        await gateway.on_new_message(
            "sid-sam",
            {
                "chatId": "c1",
                "content": "tail this",
                "attachments": [{"type": "bet", "betId": "b1", "betData": {"status": "open", "odds": 2.1}}],
            },
        )

        message, _ = emitted(gateway, ServerEvent.MESSAGE_RECEIVED)[0]
        stored = await store.messages.get_message(message["_id"])
        assert stored is not None
        assert stored.attachments[0].bet_id == "b1"
        assert message["attachments"][0]["betData"]["odds"] == 2.1

    @pytest.mark.asyncio
    async def test_message_with_id_is_relayed_without_second_write(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-sam", "sam")
        store.messages.create_message = AsyncMock()

        await gateway.on_new_message("sid-sam", {"_id": "m-rest", "chat": "c1", "content": "from REST"})

        store.messages.create_message.assert_not_called()
        message, _ = emitted(gateway, ServerEvent.MESSAGE_RECEIVED)[0]
        assert message["_id"] == "m-rest"

    @pytest.mark.asyncio
    async def test_failed_primary_write_aborts_relay(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-sam", "sam")
        store.messages.create_message = AsyncMock(side_effect=PersistenceError("down", operation="create_message"))

        await gateway.on_new_message("sid-sam", {"chat": "c1", "content": "hi"})

        assert emitted(gateway, ServerEvent.MESSAGE_RECEIVED) == []
        assert emitted(gateway, ServerEvent.ERROR)[0][0]["message"] == "Failed to send message"

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_block_live_relay(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-sam", "sam")
        await connect(gateway, auth_config, "sid-bob", "bob")
        await gateway.on_join_chat("sid-bob", "c1")
        store.notifications.create_notification = AsyncMock(
            side_effect=PersistenceError("down", operation="create_notification")
        )

        await gateway.on_new_message("sid-sam", {"chat": "c1", "content": "hi"})

        assert len(emitted(gateway, ServerEvent.MESSAGE_RECEIVED)) == 1
        assert emitted(gateway, ServerEvent.ERROR) == []

    @pytest.mark.asyncio
    async def test_non_participant_message_is_rejected(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-carol", "carol")
        store.messages.create_message = AsyncMock()

        await gateway.on_new_message("sid-carol", {"chat": "c1", "content": "let me in"})

        store.messages.create_message.assert_not_called()
        assert emitted(gateway, ServerEvent.MESSAGE_RECEIVED) == []
        error, _ = emitted(gateway, ServerEvent.ERROR)[0]
        assert error["message"] == "Not a participant in this chat"
        assert await store.notifications.list_notifications("alice") == []

    @pytest.mark.asyncio
    async def test_participant_lookup_failure_aborts_relay(self, gateway, users, auth_config, store):
        await connect(gateway, auth_config, "sid-sam", "sam")
        store.chats.get_participant_ids = AsyncMock(
            side_effect=PersistenceError("down", operation="get_participant_ids")
        )

        await gateway.on_new_message("sid-sam", {"_id": "m-rest", "chat": "c1", "content": "hi"})

        assert emitted(gateway, ServerEvent.MESSAGE_RECEIVED) == []
        assert emitted(gateway, ServerEvent.ERROR)[0][0]["message"] == "Failed to send message"

    @pytest.mark.asyncio
    async def test_invalid_message_emits_error(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-sam", "sam")

        await gateway.on_new_message("sid-sam", {"content": "no chat"})

        assert emitted(gateway, ServerEvent.ERROR)[0][0]["event"] == "new_message"


class TestEphemeralRelays:
    @pytest.mark.asyncio
    async def test_typing_is_relayed_to_others_with_username(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-sam", "sam")

        await gateway.on_typing("sid-sam", {"chatId": "c1", "isTyping": True})

        data, kwargs = emitted(gateway, ServerEvent.USER_TYPING)[0]
        assert data == {"chatId": "c1", "isTyping": True, "userId": "sam", "username": "sam"}
        assert kwargs == {"room": "chat:c1", "skip_sid": "sid-sam"}

    @pytest.mark.asyncio
    async def test_read_messages_records_receipts_and_relays(self, gateway, users, auth_config, store):
        message = await store.messages.create_message("c1", "sam", "hi")
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_read_messages("sid-bob", "c1")
        await gateway.on_read_messages("sid-bob", {"chatId": "c1"})

        assert await store.messages.get_read_by(message.id) == ["bob"]
        data, kwargs = emitted(gateway, ServerEvent.MESSAGES_READ)[0]
        assert data == {"chatId": "c1", "userId": "bob"}
        assert kwargs == {"room": "chat:c1", "skip_sid": "sid-bob"}

    @pytest.mark.asyncio
    async def test_join_and_leave_chat(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_join_chat("sid-bob", "c1")
        assert gateway.present_user_ids("chat:c1") == {"bob"}

        await gateway.on_leave_chat("sid-bob", {"chatId": "c1"})
        assert gateway.present_user_ids("chat:c1") == set()
        gateway.leave_room.assert_awaited_once_with("sid-bob", "chat:c1")


class TestBets:
    @pytest.mark.asyncio
    async def test_interaction_notifies_owner_and_updates_topic(self, gateway, users, auth_config, store):
        await store.bets.create_bet("alice", bet_id="bet42")
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_bet_interaction("sid-bob", {"betId": "bet42", "type": "like"})

        notifications = await store.notifications.list_notifications("alice")
        assert [n.content for n in notifications] == ["bob liked your bet"]
        data, kwargs = emitted(gateway, ServerEvent.BET_UPDATE)[0]
        assert data == {"betId": "bet42", "type": "like", "userId": "bob"}
        assert kwargs == {"room": "bet:bet42"}

    @pytest.mark.asyncio
    async def test_own_bet_interaction_creates_no_notification(self, gateway, users, auth_config, store):
        await store.bets.create_bet("bob", bet_id="bet7")
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_bet_interaction("sid-bob", {"betId": "bet7", "type": "like"})

        assert await store.notifications.list_notifications("bob") == []
        assert len(emitted(gateway, ServerEvent.BET_UPDATE)) == 1

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe_bet(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_subscribe_bet("sid-bob", {"betId": "bet42"})
        await gateway.on_unsubscribe_bet("sid-bob", {"betId": "bet42"})

        gateway.enter_room.assert_awaited_once_with("sid-bob", "bet:bet42")
        gateway.leave_room.assert_awaited_once_with("sid-bob", "bet:bet42")


class TestLiveness:
    @pytest.mark.asyncio
    async def test_ping_and_heartbeat_are_answered(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")

        await gateway.on_ping("sid-bob")
        await gateway.on_heartbeat("sid-bob", {})

        assert emitted(gateway, ServerEvent.PONG)[0][1] == {"to": "sid-bob"}
        assert emitted(gateway, ServerEvent.HEARTBEAT)[0][1] == {"to": "sid-bob"}

    @pytest.mark.asyncio
    async def test_stats(self, gateway, users, auth_config):
        await connect(gateway, auth_config, "sid-bob", "bob")
        await gateway.on_join_chat("sid-bob", "c1")

        assert gateway.get_stats() == {"sessions": 1, "online_users": 1, "rooms": 1}
