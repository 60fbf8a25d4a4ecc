"""
Tests for broadcast fan-out and the debounced online count.
"""

import asyncio

import pytest

from casino_hub.realtime.broadcaster import Broadcaster
from casino_hub.tests.fakes import drain_outbox


@pytest.fixture
def broadcaster(registry):
    return Broadcaster(registry, debounce_seconds=0.05)


class TestBroadcast:
    def test_reaches_every_session(self, broadcaster, registry, make_connection):
        sessions = [registry.admit(make_connection()) for _ in range(3)]

        stats = broadcaster.broadcast({"type": "system_message", "text": "hi"})

        assert stats == {"total_targets": 3, "successful_deliveries": 3, "failed_deliveries": 0, "excluded": False}
        for session in sessions:
            assert drain_outbox(session.connection) == [{"type": "system_message", "text": "hi"}]

    def test_excludes_one_session(self, broadcaster, registry, make_connection):
        leaver = registry.admit(make_connection())
        stayer = registry.admit(make_connection())

        stats = broadcaster.broadcast({"type": "system_message"}, exclude_session_id=leaver.session_id)

        assert stats["total_targets"] == 1
        assert stats["excluded"] is True
        assert drain_outbox(leaver.connection) == []
        assert len(drain_outbox(stayer.connection)) == 1

    def test_full_or_closed_peers_do_not_block_others(self, broadcaster, registry, make_connection):
        slow = registry.admit(make_connection())
        closed = registry.admit(make_connection())
        healthy = registry.admit(make_connection())
        for _ in range(slow.connection.outbox.maxsize):
            slow.connection.send_text("{}")
        closed.connection.mark_closed()

        stats = broadcaster.broadcast({"type": "chat", "text": "x"})

        assert stats["successful_deliveries"] == 1
        assert stats["failed_deliveries"] == 2
        assert drain_outbox(healthy.connection) == [{"type": "chat", "text": "x"}]

    def test_send_personal(self, broadcaster, registry, make_connection):
        session = registry.admit(make_connection())
        other = registry.admit(make_connection())

        assert broadcaster.send_personal(session, {"type": "pong", "time": 1}) is True
        assert drain_outbox(session.connection) == [{"type": "pong", "time": 1}]
        assert drain_outbox(other.connection) == []


class TestOnlineCount:
    def test_counts_open_connections_only(self, broadcaster, registry, make_connection):
        registry.admit(make_connection())
        closing = registry.admit(make_connection())
        closing.connection.mark_closed()

        assert broadcaster.online_count() == 1

    def test_broadcast_online_count(self, broadcaster, registry, make_connection):
        a = registry.admit(make_connection())
        registry.admit(make_connection())

        broadcaster.broadcast_online_count()

        assert drain_outbox(a.connection) == [{"type": "online_count", "count": 2}]

    @pytest.mark.asyncio
    async def test_debounce_coalesces_triggers(self, broadcaster, registry, make_connection):
        session = registry.admit(make_connection())

        for _ in range(5):
            broadcaster.schedule_online_count_broadcast()
        assert broadcaster.has_pending_online_count
        registry.admit(make_connection())

        await asyncio.sleep(0.1)

        frames = drain_outbox(session.connection)
        assert frames == [{"type": "online_count", "count": 2}]
        assert broadcaster.has_pending_online_count is False

    @pytest.mark.asyncio
    async def test_cancel_pending(self, broadcaster, registry, make_connection):
        session = registry.admit(make_connection())
        broadcaster.schedule_online_count_broadcast()

        broadcaster.cancel_pending()
        await asyncio.sleep(0.1)

        assert drain_outbox(session.connection) == []
