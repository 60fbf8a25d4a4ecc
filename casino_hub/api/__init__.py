"""
API module for Casino Hub.

This module provides the WebSocket endpoint and the read-only HTTP
endpoints of the Casino Hub server.
"""

from .monitoring import monitoring_router
from .real_time import realtime_router

__all__ = ["monitoring_router", "realtime_router"]
