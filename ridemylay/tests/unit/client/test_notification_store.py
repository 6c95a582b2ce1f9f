"""
Tests for the client notification store.
"""

from unittest.mock import Mock

from ridemylay.client.notification_store import NotificationStore
from ridemylay.schemas.realtime import NotificationPayload


def notification(notification_id: str, read: bool = False) -> NotificationPayload:
    return NotificationPayload(
        id=notification_id, type="message", entity_type="chat", entity_id="c1", read=read, content="hi"
    )


class TestNotificationStore:
    def setup_method(self):
        self.store = NotificationStore()

    def test_starts_loading_and_empty(self):
        assert self.store.loading is True
        assert self.store.notifications == []
        assert self.store.unread_count == 0

    def test_replace_all_deduplicates_and_counts(self):
        self.store.replace_all([notification("n1"), notification("n2", read=True), notification("n1")])

        assert [n.id for n in self.store.notifications] == ["n1", "n2"]
        assert self.store.unread_count == 1
        assert self.store.loading is False

    def test_add_inserts_newest_first_once(self):
        self.store.replace_all([notification("n1")])

        assert self.store.add(notification("n2")) is True
        assert self.store.add(notification("n2")) is False

        assert [n.id for n in self.store.notifications] == ["n2", "n1"]
        assert self.store.unread_count == 2

    def test_mark_read(self):
        self.store.replace_all([notification("n1"), notification("n2")])

        assert self.store.mark_read("n1") is True
        assert self.store.mark_read("n1") is False
        assert self.store.mark_read("missing") is False

        assert self.store.get("n1").read is True
        assert self.store.unread_count == 1

    def test_apply_update_ignores_unknown_ids(self):
        listener = Mock()
        self.store.subscribe(listener)

        self.store.apply_update(notification("unknown", read=True))

        listener.assert_not_called()

    def test_mark_all_read_and_remove(self):
        self.store.replace_all([notification("n1"), notification("n2")])

        self.store.mark_all_read()
        assert self.store.unread_count == 0
        assert all(n.read for n in self.store.notifications)

        assert self.store.remove("n1") is True
        assert self.store.remove("n1") is False
        assert [n.id for n in self.store.notifications] == ["n2"]

    def test_server_count_wins(self):
        self.store.set_unread_count(7)
        assert self.store.unread_count == 7

        self.store.set_unread_count(-1)
        assert self.store.unread_count == 0

    def test_listeners_notified_and_isolated(self):
        good = Mock()
        self.store.subscribe(Mock(side_effect=RuntimeError("ui bug")))
        cleanup = self.store.subscribe(good)

        self.store.add(notification("n1"))
        cleanup()
        self.store.add(notification("n2"))

        good.assert_called_once_with(self.store)

    def test_clear(self):
        self.store.replace_all([notification("n1")])

        self.store.clear()

        assert self.store.notifications == []
        assert self.store.loading is True
