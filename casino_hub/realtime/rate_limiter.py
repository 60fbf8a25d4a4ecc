"""
Rate limiting for Casino Hub chat messages.

This module provides a per-session fixed-window counter that gates how
often a session may post chat messages, plus a sweep that bounds memory
when disconnect cleanup is missed.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RateState:
    """Window bookkeeping for one session."""

    window_start: float
    count_in_window: int


class RateLimiter:
    """
    Fixed-window rate limiter keyed by session ID.

    A window opens on the first attempt and lasts window_seconds. Every
    attempt inside the window increments the counter; attempts beyond
    max_messages are denied until the window expires.
    """

    def __init__(
        self,
        max_messages: int = 6,
        window_seconds: float = 10.0,
        stale_after_windows: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the rate limiter with configurable settings.

        Args:
            max_messages: Maximum messages per window (default: 6)
            window_seconds: Window length in seconds (default: 10)
            stale_after_windows: Idle windows after which state is swept (default: 3)
            clock: Monotonic time source, injectable for tests
        """
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self.stale_after_windows = stale_after_windows
        self._clock = clock
        self.states: dict[str, RateState] = {}

    def check_and_consume(self, session_id: str) -> bool:
        """
        Record an attempt and report whether it is allowed.

        Args:
            session_id: The session's ID

        Returns:
            bool: True if the attempt is within the limit, False if denied
        """
        now = self._clock()
        state = self.states.get(session_id)
        if state is None or now - state.window_start > self.window_seconds:
            self.states[session_id] = RateState(window_start=now, count_in_window=1)
            return True

        state.count_in_window += 1
        if state.count_in_window <= self.max_messages:
            return True

        logger.warning(
            "Chat rate limit exceeded",
            session_id=session_id,
            message_count=state.count_in_window,
            max_messages=self.max_messages,
        )
        return False

    def get_rate_limit_info(self, session_id: str) -> dict[str, Any]:
        """
        Get rate limit information for a session.

        Args:
            session_id: The session's ID

        Returns:
            dict: Attempts, limits and seconds until the window resets
        """
        now = self._clock()
        state = self.states.get(session_id)
        if state is None or now - state.window_start > self.window_seconds:
            attempts = 0
            reset_in = 0.0
        else:
            attempts = state.count_in_window
            reset_in = max(0.0, self.window_seconds - (now - state.window_start))

        return {
            "attempts": attempts,
            "max_attempts": self.max_messages,
            "window_seconds": self.window_seconds,
            "attempts_remaining": max(0, self.max_messages - attempts),
            "reset_in": reset_in,
        }

    def remove_session_data(self, session_id: str) -> None:
        """
        Remove all rate limit data for a session.

        Args:
            session_id: The session ID to remove data for
        """
        if self.states.pop(session_id, None) is not None:
            logger.debug("Removed rate limit data", session_id=session_id)

    def cleanup_stale(self, max_idle_seconds: float | None = None) -> int:
        """
        Remove state for sessions whose window opened long ago.

        Args:
            max_idle_seconds: Age after which state is dropped
                (default: stale_after_windows * window_seconds)

        Returns:
            int: Number of entries removed
        """
        if max_idle_seconds is None:
            max_idle_seconds = self.stale_after_windows * self.window_seconds
        now = self._clock()
        stale = [sid for sid, state in self.states.items() if now - state.window_start > max_idle_seconds]
        for session_id in stale:
            del self.states[session_id]

        if stale:
            logger.debug("Cleaned up stale rate limit data", session_count=len(stale))
        return len(stale)

    def get_stats(self) -> dict[str, Any]:
        """
        Get rate limiter statistics.

        Returns:
            dict: Statistics about current rate limiting state
        """
        now = self._clock()
        active = [s for s in self.states.values() if now - s.window_start <= self.window_seconds]
        return {
            "tracked_sessions": len(self.states),
            "active_windows": len(active),
            "limited_sessions": sum(1 for s in active if s.count_in_window > self.max_messages),
            "max_messages": self.max_messages,
            "window_seconds": self.window_seconds,
        }

    def __len__(self) -> int:
        return len(self.states)
