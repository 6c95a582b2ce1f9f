"""
Repository tests against an in-memory SQLite database.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from ridemylay.exceptions import PersistenceError
from ridemylay.models.base import utcnow
from ridemylay.persistence import NotificationRepository


@pytest_asyncio.fixture
async def chat(store):
    for username in ("sam", "alice", "bob"):
        await store.users.create_user(username, user_id=username)
    return await store.chats.create_chat(["sam", "alice", "bob"], name="Sunday crew", is_group_chat=True, chat_id="c1")


class TestUsersChatsBets:
    @pytest.mark.asyncio
    async def test_get_user(self, store):
        created = await store.users.create_user("sam", user_id="sam")

        user = await store.users.get_user("sam")

        assert user.username == "sam"
        assert user.id == created.id
        assert await store.users.get_user("ghost") is None

    @pytest.mark.asyncio
    async def test_touch_user_moves_last_active_forward(self, store):
        user = await store.users.create_user("sam", user_id="sam")
        before = user.last_active

        await store.users.touch_user("sam")

        refreshed = await store.users.get_user("sam")
        assert refreshed.last_active >= before

    @pytest.mark.asyncio
    async def test_chat_participants(self, store, chat):
        assert await store.chats.get_participant_ids("c1") == ["alice", "bob", "sam"]
        assert (await store.chats.get_chat("c1")).name == "Sunday crew"
        assert await store.chats.get_participant_ids("missing") == []

    @pytest.mark.asyncio
    async def test_bet_owner(self, store):
        await store.bets.create_bet("alice", bet_id="b1")

        assert await store.bets.get_bet_owner("b1") == "alice"
        assert await store.bets.get_bet_owner("b2") is None


class TestReadReceipts:
    @pytest.mark.asyncio
    async def test_mark_message_read_records_reader_once(self, store, chat):
        message = await store.messages.create_message("c1", "sam", "hi")

        assert await store.messages.mark_message_read(message.id, "bob") is True
        assert await store.messages.mark_message_read(message.id, "bob") is False

        assert await store.messages.get_read_by(message.id) == ["bob"]

    @pytest.mark.asyncio
    async def test_read_by_only_grows(self, store, chat):
        message = await store.messages.create_message("c1", "sam", "hi")
        await store.messages.mark_message_read(message.id, "bob")
        await store.messages.mark_message_read(message.id, "alice")
        await store.messages.mark_message_read(message.id, "bob")

        assert sorted(await store.messages.get_read_by(message.id)) == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_mark_chat_read_skips_own_and_already_read(self, store, chat):
        own = await store.messages.create_message("c1", "bob", "mine")
        first = await store.messages.create_message("c1", "sam", "one")
        second = await store.messages.create_message("c1", "alice", "two")
        await store.messages.mark_message_read(first.id, "bob")

        added = await store.messages.mark_chat_read("c1", "bob")

        assert added == 1
        assert await store.messages.get_read_by(own.id) == []
        assert await store.messages.get_read_by(first.id) == ["bob"]
        assert await store.messages.get_read_by(second.id) == ["bob"]
        assert await store.messages.mark_chat_read("c1", "bob") == 0

    @pytest.mark.asyncio
    async def test_payload_includes_attachments(self, store, chat):
        message = await store.messages.create_message(
            "c1", "sam", "look", attachments=[{"type": "image", "url": "https://cdn.example/x.png"}]
        )

        payload = message.to_payload()

        assert payload["chat"] == "c1"
        assert payload["sender"] == "sam"
        assert payload["attachments"] == [{"type": "image", "url": "https://cdn.example/x.png"}]
        assert payload["readBy"] == []


class TestNotifications:
    @pytest.mark.asyncio
    async def test_create_and_payload(self, store):
        notification = await store.notifications.create_notification(
            "alice", "sam", "message", "chat", "c1", "New message from sam", {"messageId": "m1"}
        )

        payload = notification.to_payload()

        assert payload["_id"] == notification.id
        assert payload["recipient"] == "alice"
        assert payload["entityType"] == "chat"
        assert payload["read"] is False
        assert payload["metadata"] == {"messageId": "m1"}

    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_limited(self, store):
        now = utcnow()
        ids = []
        for minutes in (30, 20, 10):
            n = await store.notifications.create_notification(
                "alice", "sam", "message", "chat", "c1", f"{minutes}", created_at=now - timedelta(minutes=minutes)
            )
            ids.append(n.id)

        listed = await store.notifications.list_notifications("alice", limit=2)

        assert [n.id for n in listed] == [ids[2], ids[1]]

    @pytest.mark.asyncio
    async def test_unread_count_and_mark_all(self, store):
        for _ in range(3):
            await store.notifications.create_notification("alice", "sam", "message", "chat", "c1", "x")
        await store.notifications.create_notification("bob", "sam", "message", "chat", "c1", "x")

        assert await store.notifications.count_unread("alice") == 3
        assert await store.notifications.mark_all_read("alice") == 3
        assert await store.notifications.count_unread("alice") == 0
        assert await store.notifications.count_unread("bob") == 1
        assert await store.notifications.list_unread("alice") == []

    @pytest.mark.asyncio
    async def test_mark_read_only_for_recipient(self, store):
        notification = await store.notifications.create_notification("alice", "sam", "message", "chat", "c1", "x")

        assert await store.notifications.mark_read(notification.id, "bob") is None
        assert await store.notifications.mark_read("missing", "alice") is None
        updated = await store.notifications.mark_read(notification.id, "alice")

        assert updated.read is True
        assert await store.notifications.count_unread("alice") == 0

    @pytest.mark.asyncio
    async def test_delete_only_for_recipient(self, store):
        notification = await store.notifications.create_notification("alice", "sam", "message", "chat", "c1", "x")

        assert await store.notifications.delete_notification(notification.id, "bob") is False
        assert await store.notifications.delete_notification(notification.id, "alice") is True
        assert await store.notifications.list_notifications("alice") == []

    @pytest.mark.asyncio
    async def test_purge_older_than(self, store):
        now = utcnow()
        await store.notifications.create_notification(
            "alice", "sam", "message", "chat", "c1", "old", created_at=now - timedelta(days=40)
        )
        await store.notifications.create_notification("alice", "sam", "message", "chat", "c1", "new")

        assert await store.notifications.purge_older_than(now - timedelta(days=30)) == 1
        assert [n.content for n in await store.notifications.list_notifications("alice")] == ["new"]


class TestPersistenceErrors:
    @pytest.mark.asyncio
    async def test_driver_errors_become_persistence_errors(self):
        session_maker = Mock(side_effect=OperationalError("SELECT 1", {}, Exception("database is locked")))
        repo = NotificationRepository(session_maker)

        with pytest.raises(PersistenceError) as exc_info:
            await repo.count_unread("alice")

        assert exc_info.value.operation == "count_unread"
        assert exc_info.value.table == "notifications"
