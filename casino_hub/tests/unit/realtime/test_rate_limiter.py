"""
Tests for the per-session chat rate limiter.
"""

import pytest

from casino_hub.realtime.rate_limiter import RateLimiter


class FakeClock:
    """Deterministic monotonic clock for rate limiter tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_messages=6, window_seconds=10.0, clock=clock)


class TestRateLimiter:
    def test_initialization(self):
        limiter = RateLimiter(max_messages=3, window_seconds=5.0)
        assert limiter.max_messages == 3
        assert limiter.window_seconds == 5.0
        assert len(limiter) == 0

    def test_six_allowed_seventh_denied(self, limiter):
        results = [limiter.check_and_consume("s1") for _ in range(7)]
        assert results == [True] * 6 + [False]

    def test_allowed_again_after_window(self, limiter, clock):
        for _ in range(7):
            limiter.check_and_consume("s1")

        clock.advance(10.5)

        assert limiter.check_and_consume("s1") is True

    def test_window_boundary_is_inclusive(self, limiter, clock):
        """A window only resets once strictly more than window_seconds have passed."""
        for _ in range(6):
            limiter.check_and_consume("s1")
        clock.advance(10.0)
        assert limiter.check_and_consume("s1") is False

    def test_sessions_are_independent(self, limiter):
        for _ in range(7):
            limiter.check_and_consume("s1")

        assert limiter.check_and_consume("s2") is True

    def test_rate_limit_info(self, limiter, clock):
        limiter.check_and_consume("s1")
        limiter.check_and_consume("s1")
        clock.advance(4.0)

        info = limiter.get_rate_limit_info("s1")

        assert info["attempts"] == 2
        assert info["max_attempts"] == 6
        assert info["attempts_remaining"] == 4
        assert info["reset_in"] == pytest.approx(6.0)

    def test_rate_limit_info_unknown_session(self, limiter):
        info = limiter.get_rate_limit_info("nobody")
        assert info["attempts"] == 0
        assert info["reset_in"] == 0.0

    def test_remove_session_data(self, limiter):
        limiter.check_and_consume("s1")
        limiter.remove_session_data("s1")
        limiter.remove_session_data("s1")
        assert "s1" not in limiter.states

    def test_cleanup_stale(self, limiter, clock):
        limiter.check_and_consume("old")
        clock.advance(25.0)
        limiter.check_and_consume("fresh")
        clock.advance(6.0)

        removed = limiter.cleanup_stale()

        assert removed == 1
        assert set(limiter.states) == {"fresh"}

    def test_get_stats(self, limiter):
        for _ in range(7):
            limiter.check_and_consume("spammer")
        limiter.check_and_consume("calm")

        stats = limiter.get_stats()

        assert stats["tracked_sessions"] == 2
        assert stats["active_windows"] == 2
        assert stats["limited_sessions"] == 1
