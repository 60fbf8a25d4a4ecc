"""
Bounded history buffers and the entries stored in them.

Entries are immutable and know how to render themselves as outbound
frames, so a history snapshot can be sent to a new client as-is.
"""

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar


@dataclass(frozen=True)
class ChatEntry:
    """A chat message posted by a registered session."""

    id: str
    session_id: str
    nickname: str
    text: str
    timestamp: str

    def to_event(self) -> dict[str, Any]:
        return {
            "type": "chat",
            "id": self.id,
            "clientId": self.session_id,
            "nickname": self.nickname,
            "text": self.text,
            "time": self.timestamp,
        }


@dataclass(frozen=True)
class SystemEntry:
    """A server announcement shown in the chat stream."""

    text: str
    timestamp: str

    def to_event(self) -> dict[str, Any]:
        return {"type": "system_message", "text": self.text, "time": self.timestamp}


@dataclass(frozen=True)
class WinEntry:
    """A win reported by a registered session."""

    id: str
    session_id: str
    nickname: str
    amount: int
    game: str
    timestamp: str

    def to_event(self) -> dict[str, Any]:
        return {
            "type": "win",
            "id": self.id,
            "clientId": self.session_id,
            "nickname": self.nickname,
            "amount": self.amount,
            "game": self.game,
            "time": self.timestamp,
        }


T = TypeVar("T")


class HistoryBuffer(Generic[T]):
    """
    Fixed-capacity FIFO of the most recent entries.

    Appending past capacity evicts the oldest entry. trim() is a separate,
    more aggressive eviction path used under memory pressure.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[T] = deque(maxlen=capacity)

    def append(self, entry: T) -> None:
        self._entries.append(entry)

    def snapshot(self, n: int | None = None) -> list[T]:
        """Return the most recent n entries (all when n is None), oldest first."""
        if n is None or n >= len(self._entries):
            return list(self._entries)
        if n <= 0:
            return []
        return list(self._entries)[-n:]

    def trim(self, floor: int) -> int:
        """Drop oldest entries until at most floor remain; return the number dropped."""
        dropped = 0
        while len(self._entries) > max(floor, 0):
            self._entries.popleft()
            dropped += 1
        return dropped

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries))
