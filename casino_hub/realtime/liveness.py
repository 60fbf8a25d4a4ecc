"""
Liveness monitoring for Casino Hub connections.

Every round, sessions that have not sent anything since the previous
probe are terminated and all others are marked pending and probed again.
"""

from collections.abc import Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import heartbeat_event
from .session_registry import Session, SessionRegistry

logger = get_logger(__name__)


class LivenessMonitor:
    """
    Heartbeat probe that evicts unresponsive sessions.

    The probe is an application-level "heartbeat" frame, not a WebSocket
    protocol ping, so browsers do not answer it on their own. Clients must
    either reply to each heartbeat with {"type": "pong"} or send any frame
    (typically {"type": "ping"}) more often than the heartbeat interval.
    A session that stays silent for two consecutive rounds is terminated;
    if it was registered, the others see a departure message.

    Args:
        registry: Sessions to probe
        terminate: Called for each session that missed the previous probe
        send_probe: Sends a probe frame; defaults to a heartbeat event on the session's connection
    """

    def __init__(
        self,
        registry: SessionRegistry,
        terminate: Callable[[Session], Any],
        send_probe: Callable[[Session], bool] | None = None,
    ) -> None:
        self.registry = registry
        self.terminate = terminate
        self.send_probe = send_probe or self._send_heartbeat
        self.rounds = 0

    @staticmethod
    def _send_heartbeat(session: Session) -> bool:
        return session.connection.send_event(heartbeat_event())

    def run_round(self) -> dict[str, int]:
        """
        Probe every session once.

        Returns:
            dict: Counts of terminated and probed sessions
        """
        terminated = 0
        probed = 0
        for session in self.registry.sessions():
            if not session.alive:
                logger.info("Terminating unresponsive session", session_id=session.session_id, nickname=session.nickname)
                self.terminate(session)
                terminated += 1
                continue
            session.alive = False
            if self.send_probe(session):
                probed += 1

        self.rounds += 1
        if terminated:
            logger.info("Heartbeat round evicted sessions", terminated=terminated, probed=probed)
        else:
            logger.debug("Heartbeat round completed", probed=probed)
        return {"terminated": terminated, "probed": probed}
