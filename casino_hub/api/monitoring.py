"""
Monitoring and read-only API endpoints for Casino Hub.

Health for load balancers and uptime checks, plus snapshots of recent wins
and the online count for clients that poll instead of holding a socket.
"""

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..realtime.hub import BroadcastHub

monitoring_router = APIRouter(tags=["monitoring"])


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str
    online: int
    connections: int
    registered: int
    uptime: int
    memory: str
    wins: int
    chats: int
    rate_limits: dict[str, Any]
    tasks: dict[str, Any]
    memory_detail: dict[str, Any]


class OnlineCountResponse(BaseModel):
    """Response model for the online count."""

    count: int


def _hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


@monitoring_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> dict[str, Any]:
    """Process and hub health summary."""
    return _hub(request).health_snapshot()


@monitoring_router.get("/api/wins")
async def recent_wins(request: Request) -> list[dict[str, Any]]:
    """Most recent wins, oldest first."""
    return _hub(request).recent_wins()


@monitoring_router.get("/api/online", response_model=OnlineCountResponse)
async def online_count(request: Request) -> dict[str, int]:
    return {"count": _hub(request).broadcaster.online_count()}
