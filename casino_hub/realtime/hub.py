"""
Broadcast hub for Casino Hub.

The hub owns all in-memory state of one server instance: the session
registry, the rate limiter, both history buffers, the broadcaster and the
background task registry. One hub is created per application and stored on
app.state; request handlers receive it from there.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

from fastapi import WebSocket

from ..app.task_registry import TaskRegistry
from ..config.models import HubConfig
from ..error_types import ErrorMessages
from ..structured_logging.enhanced_logging_config import get_logger
from .broadcaster import Broadcaster
from .connection import CLOSE_GOING_AWAY, ClientConnection, ConnectionState
from .dispatcher import ProtocolDispatcher
from .envelope import format_clock_time, init_event
from .history import ChatEntry, HistoryBuffer, SystemEntry, WinEntry
from .liveness import LivenessMonitor
from .memory_monitor import MemoryMonitor
from .message_validator import WebSocketMessageValidator
from .rate_limiter import RateLimiter
from .session_registry import Session, SessionRegistry

logger = get_logger(__name__)


class BroadcastHub:
    """
    Owned state and operations of the broadcast hub.

    All methods except shutdown() are synchronous. They run on the event
    loop thread, so no lock guards the registry, buffers or limiter.
    """

    def __init__(self, config: HubConfig | None = None, memory_monitor: MemoryMonitor | None = None) -> None:
        self.config = config or HubConfig()
        cfg = self.config

        self.started_at = time.time()
        self.closing = False
        self.tasks = TaskRegistry()

        self.rate_limiter = RateLimiter(
            max_messages=cfg.rate_limit_max_messages,
            window_seconds=cfg.rate_limit_window_seconds,
        )
        self.registry = SessionRegistry(
            self.rate_limiter,
            max_connections=cfg.max_connections,
            reserved_words=cfg.reserved_nickname_words,
        )
        self.chat_history: HistoryBuffer[ChatEntry | SystemEntry] = HistoryBuffer(cfg.chat_history_size)
        self.win_history: HistoryBuffer[WinEntry] = HistoryBuffer(cfg.win_history_size)
        self.broadcaster = Broadcaster(self.registry, debounce_seconds=cfg.online_count_debounce_seconds)
        self.validator = WebSocketMessageValidator(max_message_size=cfg.max_payload_bytes)
        self.dispatcher = ProtocolDispatcher(self)
        self.liveness = LivenessMonitor(self.registry, terminate=self.terminate_session)
        self.memory_monitor = memory_monitor or MemoryMonitor(threshold_mb=cfg.memory_threshold_mb)

        self.stats: dict[str, int] = {
            "connections_total": 0,
            "rejected_connections": 0,
            "chats_total": 0,
            "wins_total": 0,
            "memory_trims": 0,
        }

    def clock_time(self) -> str:
        return format_clock_time(self.config.timezone)

    def announce(self, text: str, exclude_session_id: str | None = None) -> SystemEntry:
        """Append a system message to chat history and broadcast it."""
        entry = SystemEntry(text=text, timestamp=self.clock_time())
        self.chat_history.append(entry)
        self.broadcaster.broadcast(entry.to_event(), exclude_session_id=exclude_session_id)
        return entry

    def build_init_event(self, session: Session) -> dict[str, Any]:
        return init_event(
            session.session_id,
            [entry.to_event() for entry in self.chat_history.snapshot(self.config.chat_snapshot_size)],
            [entry.to_event() for entry in self.win_history.snapshot(self.config.win_snapshot_size)],
            self.broadcaster.online_count(),
        )

    def recent_wins(self, limit: int | None = None) -> list[dict[str, Any]]:
        count = self.config.api_wins_limit if limit is None else limit
        return [entry.to_event() for entry in self.win_history.snapshot(count)]

    def connect(self, websocket: WebSocket, remote_address: str = "unknown") -> Session:
        """
        Admit an accepted WebSocket and send it the init snapshot.

        Args:
            websocket: Accepted WebSocket
            remote_address: Client origin for diagnostics

        Returns:
            Session: The new session

        Raises:
            ConnectionLimitExceeded: If the hub is full; nothing is registered
        """
        connection = ClientConnection(websocket, queue_size=self.config.send_queue_size)
        session = self.registry.admit(connection, remote_address)
        connection.start_writer(self.tasks, name=f"writer:{session.session_id}")
        self.stats["connections_total"] += 1

        connection.send_event(self.build_init_event(session))
        self.broadcaster.schedule_online_count_broadcast()
        return session

    def disconnect(self, session: Session) -> bool:
        """
        Remove a session and announce the departure to everyone else.

        Idempotent: only the first call for a session has any effect.

        Returns:
            bool: True if the session was still registered with the hub
        """
        removed = self.registry.remove(session.session_id)
        if removed is None:
            return False

        if self.closing:
            return True

        if removed.registered and removed.nickname:
            self.announce(f"👋 {removed.nickname} left the casino", exclude_session_id=removed.session_id)
        self.broadcaster.schedule_online_count_broadcast()
        return True

    def terminate_session(self, session: Session) -> None:
        """Drop an unresponsive session and close its socket in the background."""
        self.disconnect(session)
        if session.connection.state is ConnectionState.CLOSED or self.closing:
            return
        self.tasks.register_task(
            session.connection.close(CLOSE_GOING_AWAY, "Heartbeat timeout"),
            f"close:{session.session_id}",
            "close",
        )

    def heartbeat_round(self) -> dict[str, int]:
        return self.liveness.run_round()

    def sweep_rate_limits(self) -> int:
        return self.rate_limiter.cleanup_stale()

    def check_memory(self) -> bool:
        """
        Trim history and collect garbage if RSS is above the threshold.

        Returns:
            bool: True if a trim was performed
        """
        if not self.memory_monitor.is_over_threshold():
            return False

        floor = self.config.history_floor
        dropped_chat = self.chat_history.trim(floor)
        dropped_wins = self.win_history.trim(floor)
        self.memory_monitor.force_garbage_collection()
        self.stats["memory_trims"] += 1
        logger.warning(
            "Trimmed history under memory pressure",
            dropped_chat=dropped_chat,
            dropped_wins=dropped_wins,
            floor=floor,
        )
        return True

    def periodic_online_count(self) -> None:
        self.broadcaster.broadcast_online_count()

    def periodic_jobs(self) -> list[tuple[str, float, Callable[[], Any]]]:
        """Name, interval and callable of every timer the hub needs."""
        cfg = self.config
        return [
            ("heartbeat", cfg.heartbeat_interval_seconds, self.heartbeat_round),
            ("rate_limit_sweep", cfg.rate_limit_sweep_seconds, self.sweep_rate_limits),
            ("memory_check", cfg.memory_check_interval_seconds, self.check_memory),
            ("online_count", cfg.online_count_interval_seconds, self.periodic_online_count),
        ]

    def health_snapshot(self) -> dict[str, Any]:
        return {
            "status": "shutting_down" if self.closing else "ok",
            "online": self.broadcaster.online_count(),
            "connections": len(self.registry),
            "registered": len(self.registry.registered_sessions()),
            "uptime": int(time.time() - self.started_at),
            "memory": f"{int(self.memory_monitor.get_rss_mb())}MB",
            "wins": len(self.win_history),
            "chats": len(self.chat_history),
            "rate_limits": self.rate_limiter.get_stats(),
            "tasks": self.tasks.get_registry_info(),
            "memory_detail": self.memory_monitor.get_memory_stats(),
        }

    async def shutdown(self, grace: float | None = None) -> None:
        """
        Stop timers, close every connection and wait for background tasks.

        Args:
            grace: Seconds allowed for sockets and tasks to finish (default: config)
        """
        if self.closing:
            return
        self.closing = True
        grace = self.config.shutdown_grace_seconds if grace is None else grace
        self.broadcaster.cancel_pending()

        for metadata in self.tasks.list_active_tasks():
            if metadata.task_type == "periodic":
                await self.tasks.cancel_task(metadata.task)

        sessions = self.registry.sessions()
        logger.info("Closing connections for shutdown", connections=len(sessions), grace=grace)
        if sessions:
            closes = [
                s.connection.close(CLOSE_GOING_AWAY, ErrorMessages.SERVER_SHUTTING_DOWN, flush_timeout=grace)
                for s in sessions
            ]
            try:
                await asyncio.wait_for(asyncio.gather(*closes, return_exceptions=True), timeout=grace)
            except TimeoutError:
                logger.warning("Connections did not close within grace period", grace=grace)
        for session in sessions:
            self.registry.remove(session.session_id)

        await self.tasks.shutdown_all(timeout=grace)
        logger.info("Broadcast hub stopped")
