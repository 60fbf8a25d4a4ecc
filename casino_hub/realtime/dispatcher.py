"""
Protocol dispatcher for Casino Hub.

Routes validated inbound frames to a handler by their "type". Handlers are
synchronous: every state change they make happens without an await in
between, and every reply is queued rather than sent.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..error_types import ErrorType, create_websocket_error_response
from ..exceptions import NicknameError
from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import pong_event, register_ok_event
from .history import ChatEntry, WinEntry
from .sanitizer import sanitize_text
from .session_registry import Session

if TYPE_CHECKING:
    from .hub import BroadcastHub

logger = get_logger(__name__)

DEFAULT_GAME_NAME = "Game"

MessageHandler = Callable[[Session, dict[str, Any]], None]


def parse_win_amount(raw: Any, cap: int) -> int | None:
    """
    Parse a client-supplied win amount.

    Accepts JSON numbers and numeric strings, floors fractional values and
    returns None unless the result lies in (0, cap]. Booleans are rejected.
    """
    if isinstance(raw, bool) or not isinstance(raw, int | float | str):
        return None
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            return None
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        raw = math.floor(raw)

    if raw <= 0 or raw > cap:
        return None
    return int(raw)


class ProtocolDispatcher:
    """Maps message types to handlers that act on the hub."""

    def __init__(self, hub: BroadcastHub) -> None:
        self.hub = hub
        self.handlers: dict[str, MessageHandler] = {
            "register": self.handle_register,
            "chat": self.handle_chat,
            "win": self.handle_win,
            "ping": self.handle_ping,
            "pong": self.handle_pong,
        }

    def dispatch(self, session: Session, message: dict[str, Any]) -> bool:
        """
        Route a frame to its handler.

        Returns:
            bool: False if the frame was ignored (unknown type or removed session)
        """
        if session.session_id not in self.hub.registry:
            logger.debug("Dropping frame from removed session", session_id=session.session_id)
            return False
        message_type = message.get("type")
        handler = self.handlers.get(message_type) if isinstance(message_type, str) else None
        if handler is None:
            logger.debug("Ignoring unknown message type", session_id=session.session_id, message_type=message_type)
            return False
        handler(session, message)
        return True

    def handle_register(self, session: Session, message: dict[str, Any]) -> None:
        hub = self.hub
        try:
            nickname = hub.registry.register(session, message.get("nickname"))
        except NicknameError as e:
            hub.broadcaster.send_personal(
                session,
                create_websocket_error_response(e.error_type, e.user_friendly, response_type="register_error"),
            )
            return

        if nickname is None:
            return

        hub.broadcaster.send_personal(session, register_ok_event(nickname, session.session_id))
        hub.announce(f"🎰 {nickname} joined the casino!")
        hub.broadcaster.schedule_online_count_broadcast()

    def handle_chat(self, session: Session, message: dict[str, Any]) -> None:
        hub = self.hub
        if not session.registered or session.nickname is None:
            hub.broadcaster.send_personal(session, create_websocket_error_response(ErrorType.NOT_REGISTERED))
            return

        if not hub.rate_limiter.check_and_consume(session.session_id):
            hub.broadcaster.send_personal(session, create_websocket_error_response(ErrorType.RATE_LIMIT_EXCEEDED))
            return

        text = sanitize_text(message.get("text"), hub.config.chat_max_length)
        if not text:
            logger.debug("Dropping empty chat message", session_id=session.session_id)
            return

        entry = ChatEntry(
            id=str(uuid.uuid4()),
            session_id=session.session_id,
            nickname=session.nickname,
            text=text,
            timestamp=hub.clock_time(),
        )
        hub.chat_history.append(entry)
        hub.stats["chats_total"] += 1
        hub.broadcaster.broadcast(entry.to_event())

    def handle_win(self, session: Session, message: dict[str, Any]) -> None:
        hub = self.hub
        if not session.registered or session.nickname is None:
            logger.debug("Dropping win from unregistered session", session_id=session.session_id)
            return

        amount = parse_win_amount(message.get("amount"), hub.config.win_amount_cap)
        if amount is None:
            logger.debug("Dropping win with invalid amount", session_id=session.session_id, amount=message.get("amount"))
            return

        game = sanitize_text(message.get("game") or DEFAULT_GAME_NAME, hub.config.game_max_length)
        game = game or DEFAULT_GAME_NAME
        entry = WinEntry(
            id=str(uuid.uuid4()),
            session_id=session.session_id,
            nickname=session.nickname,
            amount=amount,
            game=game,
            timestamp=hub.clock_time(),
        )
        hub.win_history.append(entry)
        hub.stats["wins_total"] += 1
        hub.broadcaster.broadcast(entry.to_event())
        logger.info("Win recorded", session_id=session.session_id, nickname=session.nickname, amount=amount, game=game)

        if amount >= hub.config.big_win_threshold:
            hub.announce(f"🎉 {session.nickname} won ${amount:,} in {game}!")

    def handle_ping(self, session: Session, message: dict[str, Any]) -> None:
        self.hub.broadcaster.send_personal(session, pong_event())

    def handle_pong(self, session: Session, message: dict[str, Any]) -> None:
        session.alive = True
