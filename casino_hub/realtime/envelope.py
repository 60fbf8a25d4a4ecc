"""
Outbound frame builders for Casino Hub.

Every frame is a flat JSON object with a "type" discriminator. Timestamps
shown to users are clock-time strings ("HH:MM") in the configured zone;
protocol timestamps (pong, heartbeat) are epoch milliseconds.
"""

from __future__ import annotations

import json
import time
from datetime import datetime
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo


@lru_cache(maxsize=8)
def _zone(timezone: str) -> ZoneInfo:
    return ZoneInfo(timezone)


def format_clock_time(timezone: str, now: datetime | None = None) -> str:
    """Return the current (or given) time as HH:MM in the given timezone."""
    moment = now.astimezone(_zone(timezone)) if now is not None else datetime.now(_zone(timezone))
    return moment.strftime("%H:%M")


def epoch_millis() -> int:
    return int(time.time() * 1000)


def serialize_event(event: dict[str, Any]) -> str:
    """Serialize a frame once for fan-out."""
    return json.dumps(event, ensure_ascii=False, separators=(",", ":"))


def build_event(event_type: str, **fields: Any) -> dict[str, Any]:
    """
    Create an outbound frame.

    Args:
        event_type: Value of the "type" discriminator
        **fields: Frame payload

    Returns:
        dict: Frame ready for serialize_event
    """
    event: dict[str, Any] = {"type": event_type}
    event.update(fields)
    return event


def init_event(
    session_id: str, chat_history: list[dict[str, Any]], win_history: list[dict[str, Any]], online_count: int
) -> dict[str, Any]:
    return build_event(
        "init",
        clientId=session_id,
        chatHistory=chat_history,
        winHistory=win_history,
        onlineCount=online_count,
    )


def register_ok_event(nickname: str, session_id: str) -> dict[str, Any]:
    return build_event("register_ok", nickname=nickname, clientId=session_id)


def online_count_event(count: int) -> dict[str, Any]:
    return build_event("online_count", count=count)


def pong_event() -> dict[str, Any]:
    return build_event("pong", time=epoch_millis())


def heartbeat_event() -> dict[str, Any]:
    return build_event("heartbeat", time=epoch_millis())
