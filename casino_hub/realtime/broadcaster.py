"""
Broadcast fan-out for Casino Hub.

Frames are serialized once and queued on every open connection. Queueing
never waits on a peer, so one slow client cannot delay the rest.
"""

import asyncio
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import online_count_event, serialize_event
from .session_registry import Session, SessionRegistry

logger = get_logger(__name__)


class Broadcaster:
    """
    Best-effort delivery to all sessions in a registry.

    Also owns the debounced online-count broadcast: the first trigger
    schedules a broadcast debounce_seconds later and further triggers are
    absorbed until it fires.
    """

    def __init__(self, registry: SessionRegistry, debounce_seconds: float = 0.5) -> None:
        self.registry = registry
        self.debounce_seconds = debounce_seconds
        self._pending_online_count: asyncio.TimerHandle | None = None

    def broadcast(self, event: dict[str, Any], exclude_session_id: str | None = None) -> dict[str, Any]:
        """
        Deliver an event to every open connection.

        Args:
            event: Frame to send
            exclude_session_id: Session that should not receive the frame

        Returns:
            dict: Delivery statistics
        """
        payload = serialize_event(event)
        targets = [s for s in self.registry.sessions() if s.session_id != exclude_session_id]
        stats = {
            "total_targets": len(targets),
            "successful_deliveries": 0,
            "failed_deliveries": 0,
            "excluded": exclude_session_id is not None,
        }

        for session in targets:
            if session.connection.send_text(payload):
                stats["successful_deliveries"] += 1
            else:
                stats["failed_deliveries"] += 1

        if stats["failed_deliveries"]:
            logger.debug(
                "Broadcast had undelivered frames",
                event_type=event.get("type"),
                failed_deliveries=stats["failed_deliveries"],
                total_targets=stats["total_targets"],
            )
        return stats

    def send_personal(self, session: Session, event: dict[str, Any]) -> bool:
        return session.connection.send_event(event)

    def online_count(self) -> int:
        return sum(1 for s in self.registry.sessions() if s.is_open)

    def broadcast_online_count(self) -> dict[str, Any]:
        return self.broadcast(online_count_event(self.online_count()))

    def schedule_online_count_broadcast(self) -> None:
        """Coalesce online-count updates; the broadcast carries the count at fire time."""
        if self._pending_online_count is not None:
            return
        loop = asyncio.get_running_loop()
        self._pending_online_count = loop.call_later(self.debounce_seconds, self._fire_online_count)

    def _fire_online_count(self) -> None:
        self._pending_online_count = None
        self.broadcast_online_count()

    @property
    def has_pending_online_count(self) -> bool:
        return self._pending_online_count is not None

    def cancel_pending(self) -> None:
        if self._pending_online_count is not None:
            self._pending_online_count.cancel()
            self._pending_online_count = None
