"""
Tests for the Event Dispatch Layer.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from ridemylay.client.event_dispatcher import EventDispatcher

from ...fakes import FakeTransport


class TestEventDispatcher:
    def setup_method(self):
        self.dispatcher = EventDispatcher()

    @pytest.mark.asyncio
    async def test_callbacks_run_in_registration_order(self):
        calls = []
        self.dispatcher.on("new_message", lambda data: calls.append(("a", data)))
        self.dispatcher.on("new_message", lambda data: calls.append(("b", data)))

        delivered = await self.dispatcher.dispatch("new_message", {"content": "hi"})

        assert delivered == 2
        assert calls == [("a", {"content": "hi"}), ("b", {"content": "hi"})]

    @pytest.mark.asyncio
    async def test_events_are_delivered_in_arrival_order(self):
        transport = FakeTransport()
        seen = []
        self.dispatcher.on("user_typing", lambda data: seen.append(data["n"]))
        self.dispatcher.bind(transport)

        for n in range(5):
            await transport.fire("user_typing", {"n": n})

        assert seen == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_cleanup_stops_delivery(self):
        callback = Mock()
        cleanup = self.dispatcher.on("new_notification", callback)

        cleanup()
        await self.dispatcher.dispatch("new_notification", {"_id": "n1"})

        callback.assert_not_called()
        assert self.dispatcher.listener_count("new_notification") == 0

    @pytest.mark.asyncio
    async def test_cleanup_is_idempotent(self):
        cleanup = self.dispatcher.on("pong", Mock())

        cleanup()
        cleanup()

        assert self.dispatcher.listener_count("pong") == 0

    @pytest.mark.asyncio
    async def test_cleanup_during_delivery_skips_detached_callback(self):
        late = Mock()
        cleanups = {}

        def first(_data):
            cleanups["late"]()

        self.dispatcher.on("bet_update", first)
        cleanups["late"] = self.dispatcher.on("bet_update", late)

        await self.dispatcher.dispatch("bet_update", {"betId": "b1"})

        late.assert_not_called()

    @pytest.mark.asyncio
    async def test_interleaved_register_and_cleanup(self):
        calls = []
        cleanup_a = self.dispatcher.on("messages_read", lambda d: calls.append("a"))
        self.dispatcher.on("messages_read", lambda d: calls.append("b"))
        cleanup_a()
        cleanup_c = self.dispatcher.on("messages_read", lambda d: calls.append("c"))
        self.dispatcher.on("messages_read", lambda d: calls.append("d"))
        cleanup_c()

        await self.dispatcher.dispatch("messages_read", {})

        assert calls == ["b", "d"]

    @pytest.mark.asyncio
    async def test_raising_callback_is_isolated(self):
        after = Mock()
        self.dispatcher.on("new_notification", Mock(side_effect=ValueError("bad render")))
        self.dispatcher.on("new_notification", after)

        delivered = await self.dispatcher.dispatch("new_notification", {"_id": "n1"})

        assert delivered == 1
        after.assert_called_once_with({"_id": "n1"})

    @pytest.mark.asyncio
    async def test_coroutine_callbacks_are_awaited(self):
        callback = AsyncMock()
        self.dispatcher.on("message_received", callback)

        await self.dispatcher.dispatch("message_received", {"_id": "m1"})

        callback.assert_awaited_once_with({"_id": "m1"})

    @pytest.mark.asyncio
    async def test_registration_before_transport_exists(self):
        callback = Mock()
        self.dispatcher.on("notifications_init", callback)
        transport = FakeTransport()

        self.dispatcher.bind(transport)
        await transport.fire("notifications_init", [])

        callback.assert_called_once_with([])

    @pytest.mark.asyncio
    async def test_rebind_installs_pumps_on_new_transport(self):
        callback = Mock()
        self.dispatcher.on("user_status_change", callback)
        first, second = FakeTransport(), FakeTransport()
        self.dispatcher.bind(first)
        self.dispatcher.unbind()

        self.dispatcher.bind(second)
        await second.fire("user_status_change", {"userId": "u1", "isOnline": True})

        assert "user_status_change" in second.handlers
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_payload_is_normalized_once(self):
        callback = Mock()
        self.dispatcher.on("new_notification", callback)

        await self.dispatcher.dispatch(
            "new_notification", {"_id": {"$oid": "abc"}, "createdAt": {"$date": "2024-01-01T00:00:00Z"}}
        )

        callback.assert_called_once_with({"_id": "abc", "createdAt": "2024-01-01T00:00:00Z"})

    @pytest.mark.asyncio
    async def test_clear_keeps_system_listeners(self):
        system = Mock()
        consumer = Mock()
        self.dispatcher.on("pong", system, system=True)
        self.dispatcher.on("pong", consumer)

        self.dispatcher.clear()
        await self.dispatcher.dispatch("pong", None)

        system.assert_called_once_with(None)
        consumer.assert_not_called()
