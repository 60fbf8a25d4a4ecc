"""
Session registry for Casino Hub.

This module tracks one Session per live WebSocket, enforces the global
connection cap and the nickname rules, and owns the lifetime of each
session's rate-limit state.
"""

import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..error_types import ErrorType, message_for
from ..exceptions import ConnectionLimitExceeded, NicknameError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger
from .connection import ClientConnection
from .rate_limiter import RateLimiter
from .sanitizer import NICKNAME_MIN_LENGTH, is_valid_nickname, sanitize_nickname

logger = get_logger(__name__)


@dataclass
class Session:
    """Server-side state for one live connection."""

    connection: ClientConnection
    remote_address: str = "unknown"
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    nickname: str | None = None
    registered: bool = False
    alive: bool = True
    connected_at: float = field(default_factory=time.time)

    @property
    def is_open(self) -> bool:
        return self.connection.is_open


class SessionRegistry:
    """
    Map of session ID to Session.

    Nickname uniqueness is case-insensitive and only checked against
    registered sessions, so two connections may both hold a pending claim
    on a name until one of them registers.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        max_connections: int = 500,
        reserved_words: Iterable[str] = (),
    ) -> None:
        self.rate_limiter = rate_limiter
        self.max_connections = max_connections
        self.reserved_words = tuple(word.lower() for word in reserved_words if word)
        self._sessions: dict[str, Session] = {}

    def admit(self, connection: ClientConnection, remote_address: str = "unknown") -> Session:
        """
        Create a session for a freshly accepted connection.

        Raises:
            ConnectionLimitExceeded: If the registry already holds max_connections sessions
        """
        if len(self._sessions) >= self.max_connections:
            raise ConnectionLimitExceeded(
                "Connection limit reached",
                context=create_error_context(remote_address=remote_address),
                max_connections=self.max_connections,
            )

        session = Session(connection=connection, remote_address=remote_address)
        self._sessions[session.session_id] = session
        logger.info(
            "Session admitted",
            session_id=session.session_id,
            remote_address=remote_address,
            total_sessions=len(self._sessions),
        )
        return session

    def register(self, session: Session, raw_nickname: object) -> str | None:
        """
        Claim a nickname for a session.

        Args:
            session: The session registering
            raw_nickname: Nickname as sent by the client

        Returns:
            str | None: The accepted nickname, or None if the session was already registered

        Raises:
            NicknameError: If the nickname is too short, too long, taken or reserved
        """
        if session.registered:
            logger.debug("Ignoring repeated registration", session_id=session.session_id)
            return None

        nickname = sanitize_nickname(raw_nickname)
        context = create_error_context(session_id=session.session_id, message_type="register")

        if not is_valid_nickname(nickname):
            error_type = (
                ErrorType.NICKNAME_TOO_SHORT if len(nickname) < NICKNAME_MIN_LENGTH else ErrorType.NICKNAME_TOO_LONG
            )
            raise NicknameError(message_for(error_type), error_type, context=context)

        lowered = nickname.lower()
        if any(word in lowered for word in self.reserved_words):
            raise NicknameError(
                message_for(ErrorType.NICKNAME_FORBIDDEN), ErrorType.NICKNAME_FORBIDDEN, context=context
            )

        if self.is_nickname_taken(nickname, exclude_session_id=session.session_id):
            raise NicknameError(message_for(ErrorType.NICKNAME_TAKEN), ErrorType.NICKNAME_TAKEN, context=context)

        session.nickname = nickname
        session.registered = True
        logger.info("Session registered", session_id=session.session_id, nickname=nickname)
        return nickname

    def is_nickname_taken(self, nickname: str, exclude_session_id: str | None = None) -> bool:
        lowered = nickname.lower()
        return any(
            s.registered and s.nickname is not None and s.nickname.lower() == lowered
            for s in self._sessions.values()
            if s.session_id != exclude_session_id
        )

    def remove(self, session_id: str) -> Session | None:
        """Delete a session and its rate-limit state. Removing an unknown ID is a no-op."""
        session = self._sessions.pop(session_id, None)
        self.rate_limiter.remove_session_data(session_id)
        if session is not None:
            logger.info(
                "Session removed",
                session_id=session_id,
                nickname=session.nickname,
                total_sessions=len(self._sessions),
            )
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def registered_sessions(self) -> list[Session]:
        return [s for s in self._sessions.values() if s.registered]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
