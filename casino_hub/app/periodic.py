"""Periodic job runner.

Each hub timer (heartbeat, rate limit sweep, memory check, online count)
runs as one of these loops inside a TaskRegistry task.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

PeriodicJob = Callable[[], Awaitable[Any] | Any]


async def run_periodic(name: str, interval: float, job: PeriodicJob) -> None:
    """Run job every interval seconds until cancelled.

    The first run happens one interval after start. A failing round is
    logged and the loop carries on with the next one.
    """
    rounds = 0
    logger.info("Periodic job started", job=name, interval=interval)

    while True:
        try:
            await asyncio.sleep(interval)
            result = job()
            if inspect.isawaitable(result):
                await result
            rounds += 1
        except asyncio.CancelledError:
            logger.info("Periodic job cancelled", job=name, rounds=rounds)
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: one failed round must not stop the timer
            logger.error("Error in periodic job", job=name, rounds=rounds, error=str(e), exc_info=True)
