"""
Client connection wrapper for Casino Hub.

Each WebSocket gets a bounded outbound queue drained by its own writer
task. Producers enqueue without waiting, so a slow or dead peer can only
lose its own frames; it never stalls a broadcast.
"""

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import serialize_event

if TYPE_CHECKING:
    from ..app.task_registry import TaskRegistry

logger = get_logger(__name__)

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_TRY_AGAIN_LATER = 1013


class ConnectionState(Enum):
    """Lifecycle of a client connection."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


def resolve_remote_address(websocket: WebSocket) -> str:
    """
    Best-effort client origin for diagnostics.

    Prefers the first X-Forwarded-For hop, then X-Real-IP, then the socket peer.
    """
    headers = websocket.headers
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    client = websocket.client
    if client is not None and client.host:
        return client.host
    return "unknown"


class ClientConnection:
    """
    Transport handle for one WebSocket.

    send_text/send_event never block and never raise. The writer task owns
    every call to websocket.send_text; close() stops it and closes the socket.
    """

    def __init__(self, websocket: WebSocket, queue_size: int = 256) -> None:
        self.websocket = websocket
        self.outbox: asyncio.Queue[str | None] = asyncio.Queue(maxsize=queue_size)
        self.state = ConnectionState.OPEN
        self.dropped_frames = 0
        self.sent_frames = 0
        self._writer_task: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def send_text(self, text: str) -> bool:
        """Queue a serialized frame; return False if the connection is not open or its queue is full."""
        if not self.is_open:
            return False
        try:
            self.outbox.put_nowait(text)
        except asyncio.QueueFull:
            self.dropped_frames += 1
            logger.debug("Outbound queue full, frame dropped", dropped_frames=self.dropped_frames)
            return False
        return True

    def send_event(self, event: dict[str, Any]) -> bool:
        return self.send_text(serialize_event(event))

    def start_writer(self, task_registry: "TaskRegistry | None" = None, name: str = "writer") -> asyncio.Task[None]:
        """Start the writer task, tracked by task_registry when one is given."""
        if self._writer_task is None:
            if task_registry is not None:
                self._writer_task = task_registry.register_task(self._write_loop(), name, "writer")
            else:
                self._writer_task = asyncio.create_task(self._write_loop())
        return self._writer_task

    async def _write_loop(self) -> None:
        while True:
            text = await self.outbox.get()
            if text is None:
                return
            try:
                await self.websocket.send_text(text)
                self.sent_frames += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: any transport failure means the peer is gone; the read loop handles cleanup
                logger.debug("WebSocket send failed, stopping writer", error=str(e), error_type=type(e).__name__)
                self.state = ConnectionState.CLOSED
                return

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "", flush_timeout: float = 1.0) -> None:
        """
        Flush queued frames (bounded by flush_timeout) and close the socket.

        Safe to call more than once and after the peer has already gone.
        """
        if self.state is ConnectionState.CLOSED:
            await self._stop_writer()
            return
        self.state = ConnectionState.CLOSING

        if self._writer_task is not None and not self._writer_task.done():
            try:
                self.outbox.put_nowait(None)
                await asyncio.wait_for(asyncio.shield(self._writer_task), timeout=flush_timeout)
            except (asyncio.QueueFull, TimeoutError):
                logger.debug("Writer did not flush before close", pending=self.outbox.qsize())
        await self._stop_writer()

        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: closing an already-closed socket raises transport-specific errors
            logger.debug("WebSocket close failed", error=str(e), error_type=type(e).__name__)
        finally:
            self.state = ConnectionState.CLOSED

    def mark_closed(self) -> None:
        """
        Record that the peer disconnected; the writer is stopped without touching the socket.

        A close() already in progress keeps ownership of the writer.
        """
        if self.state is ConnectionState.CLOSING:
            return
        self.state = ConnectionState.CLOSED
        if self._writer_task is not None and not self._writer_task.done():
            self._writer_task.cancel()

    async def _stop_writer(self) -> None:
        task = self._writer_task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
