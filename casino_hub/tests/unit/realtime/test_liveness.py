"""
Tests for heartbeat rounds.
"""

import pytest

from casino_hub.realtime.liveness import LivenessMonitor
from casino_hub.tests.fakes import drain_outbox


@pytest.fixture
def terminated():
    return []


@pytest.fixture
def monitor(registry, terminated):
    def _terminate(session):
        registry.remove(session.session_id)
        terminated.append(session)

    return LivenessMonitor(registry, terminate=_terminate)


class TestLivenessMonitor:
    def test_first_round_probes_everyone(self, monitor, registry, make_connection, terminated):
        sessions = [registry.admit(make_connection()) for _ in range(2)]

        result = monitor.run_round()

        assert result == {"terminated": 0, "probed": 2}
        assert terminated == []
        for session in sessions:
            assert session.alive is False
            frames = drain_outbox(session.connection)
            assert [f["type"] for f in frames] == ["heartbeat"]

    def test_silent_session_terminated_on_next_round(self, monitor, registry, make_connection, terminated):
        silent = registry.admit(make_connection())
        chatty = registry.admit(make_connection())

        monitor.run_round()
        chatty.alive = True
        result = monitor.run_round()

        assert result == {"terminated": 1, "probed": 1}
        assert terminated == [silent]
        assert silent.session_id not in registry
        assert chatty.session_id in registry
        assert monitor.rounds == 2

    def test_custom_probe(self, registry, make_connection):
        probed = []
        monitor = LivenessMonitor(registry, terminate=lambda s: None, send_probe=lambda s: probed.append(s) or True)
        session = registry.admit(make_connection())

        monitor.run_round()

        assert probed == [session]
        assert drain_outbox(session.connection) == []

    def test_empty_registry(self, monitor):
        assert monitor.run_round() == {"terminated": 0, "probed": 0}
