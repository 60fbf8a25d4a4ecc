"""
WebSocket handler for Casino Hub real-time communication.

This module runs the per-connection read loop: admit the socket to the hub,
then validate and dispatch every inbound frame until the peer goes away.
"""

from fastapi import WebSocket, WebSocketDisconnect

from ..error_types import ErrorMessages
from ..exceptions import ConnectionLimitExceeded
from ..structured_logging.enhanced_logging_config import bind_request_context, get_logger, unbind_request_context
from .connection import CLOSE_GOING_AWAY, CLOSE_TRY_AGAIN_LATER, resolve_remote_address
from .hub import BroadcastHub
from .message_validator import MessageValidationError
from .session_registry import Session

logger = get_logger(__name__)


def _decode_frame(message: dict) -> str | None:
    """Return frame text; binary frames are accepted if they are valid UTF-8."""
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


async def _handle_websocket_message_loop(websocket: WebSocket, hub: BroadcastHub, session: Session) -> None:
    """Handle the main WebSocket message loop."""
    session_id = session.session_id

    while True:
        try:
            message = await websocket.receive()
        except WebSocketDisconnect as e:
            logger.info("WebSocket disconnected", session_id=session_id, code=e.code)
            break
        except RuntimeError as e:
            logger.warning("WebSocket connection lost (not connected)", session_id=session_id, error=str(e))
            break

        if message["type"] == "websocket.disconnect":
            logger.info("WebSocket disconnected", session_id=session_id, code=message.get("code"))
            break

        if session.session_id not in hub.registry or not session.connection.is_open:
            logger.debug("Session no longer active, leaving read loop", session_id=session_id)
            break

        # Any frame from the peer, valid or not, proves the connection is alive
        session.alive = True

        data = _decode_frame(message)
        if data is None:
            logger.debug("Dropping undecodable frame", session_id=session_id)
            continue

        try:
            frame = hub.validator.parse_and_validate(data, session_id)
        except MessageValidationError as e:
            logger.debug(
                "Message validation failed",
                session_id=session_id,
                error_type=e.error_type,
                error_message=e.message,
            )
            continue

        try:
            hub.dispatcher.dispatch(session, frame)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a failing handler must not take the connection down
            logger.error(
                "Error handling WebSocket message",
                session_id=session_id,
                message_type=frame.get("type"),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )


async def handle_websocket_connection(websocket: WebSocket, hub: BroadcastHub) -> None:
    """
    Handle a WebSocket connection from accept to cleanup.

    Args:
        websocket: The incoming WebSocket
        hub: BroadcastHub instance (injected from the endpoint)
    """
    await websocket.accept()
    remote_address = resolve_remote_address(websocket)

    if hub.closing:
        logger.info("Rejected WebSocket connection - server shutting down", remote_address=remote_address)
        await websocket.close(code=CLOSE_GOING_AWAY, reason=ErrorMessages.SERVER_SHUTTING_DOWN)
        return

    try:
        session = hub.connect(websocket, remote_address)
    except ConnectionLimitExceeded:
        hub.stats["rejected_connections"] += 1
        await websocket.close(code=CLOSE_TRY_AGAIN_LATER, reason=ErrorMessages.SERVER_FULL)
        return

    bind_request_context(session_id=session.session_id, remote_address=remote_address)
    try:
        await _handle_websocket_message_loop(websocket, hub, session)
    finally:
        hub.disconnect(session)
        session.connection.mark_closed()
        logger.info("Connection cleaned up", online=hub.broadcaster.online_count())
        unbind_request_context("session_id", "remote_address")
