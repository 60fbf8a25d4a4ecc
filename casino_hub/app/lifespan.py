"""Application lifecycle management for Casino Hub.

Startup registers the hub's periodic jobs on its TaskRegistry. Shutdown
stops them, closes every connection with 1001 and waits for background
tasks within the configured grace period.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..realtime.hub import BroadcastHub
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from .periodic import run_periodic

logger = get_logger(__name__)


def start_periodic_jobs(hub: BroadcastHub) -> list[asyncio.Task]:
    """Register every periodic job of the hub as a lifecycle task."""
    tasks = []
    for name, interval, job in hub.periodic_jobs():
        tasks.append(hub.tasks.register_task(run_periodic(name, interval, job), f"periodic/{name}", "periodic"))
    logger.info("Periodic jobs started", jobs=[task.get_name() for task in tasks])
    return tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The hub itself is created by the factory so that it exists before the
    first request; this context only drives its timers and its shutdown.
    """
    hub: BroadcastHub = app.state.hub
    logger.info("Starting Casino Hub server")
    start_periodic_jobs(hub)
    logger.info("Casino Hub server started successfully")

    yield

    logger.info("Shutting down Casino Hub server...")
    try:
        await hub.shutdown()
    except (AttributeError, KeyError, TypeError, ValueError, RuntimeError) as e:
        log_exception_once(logger, "error", "Critical shutdown failure", exc=e, exc_info=True)
    logger.info("Casino Hub server shutdown complete")
