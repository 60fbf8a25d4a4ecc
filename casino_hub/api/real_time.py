"""
Real-time communication API endpoints for Casino Hub.

This module exposes the WebSocket endpoint that carries chat, wins and
online count updates.
"""

from fastapi import APIRouter, WebSocket

from ..realtime.hub import BroadcastHub
from ..realtime.websocket_handler import handle_websocket_connection

realtime_router = APIRouter(tags=["realtime"])


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for registration, chat and live wins."""
    hub: BroadcastHub = websocket.app.state.hub
    await handle_websocket_connection(websocket, hub)
