"""
TaskRegistry for Casino Hub background task lifecycle management.

Every long-running asyncio.Task the hub starts (periodic jobs, per-connection
writers) is registered here so shutdown can cancel and await all of them
within a bounded timeout.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class TaskMetadata:
    """Metadata for tracked asyncio.Tasks."""

    def __init__(self, task: asyncio.Task[Any], task_name: str, task_type: str = "unknown"):
        """
        Initialize task metadata.

        Args:
            task: The asyncio.Task instance to track
            task_name: Human-readable name for this task
            task_type: Categorization of task (e.g., 'periodic', 'writer', 'lifecycle')
        """
        self.task = task
        self.task_name = task_name
        self.task_type = task_type
        self.created_at = asyncio.get_running_loop().time()
        self.is_lifecycle = task_type in ("lifecycle", "periodic")

    def __repr__(self):
        status = "done" if self.task.done() else "pending"
        return f"TaskMetadata({self.task_name}, {self.task_type}, {status})"


class TaskRegistry:
    """
    Asyncio task registry with name lookup and timeout-bounded shutdown.

    Lifecycle tasks (periodic jobs) are cancelled before the rest so that no
    timer fires against a hub that is already closing connections.
    """

    def __init__(self):
        self._active_tasks: dict[asyncio.Task[Any], TaskMetadata] = {}
        self._task_names: dict[str, asyncio.Task[Any]] = {}
        self._lifecycle_tasks: set[asyncio.Task[Any]] = set()
        self._shutdown_in_progress = False

    def register_task(
        self, coro: Coroutine[Any, Any, Any], task_name: str, task_type: str = "unknown"
    ) -> asyncio.Task[Any]:
        """
        Register and create a tracked asyncio.Task.

        Args:
            coro: The coroutine to wrap as a task
            task_name: Human-readable identifier for this task
            task_type: Category for task management (periodic, writer, lifecycle)

        Returns:
            The created asyncio.Task that is now tracked

        Raises:
            RuntimeError: If called while shutdown_all() is running
        """
        if self._shutdown_in_progress:
            logger.warning("Attempting to register task during shutdown - denied", task_name=task_name)
            coro.close()
            raise RuntimeError("Task registration denied during shutdown")

        if task_name in self._task_names:
            logger.debug("Task name already exists, appending loop time", task_name=task_name)
            task_name = f"{task_name}_{asyncio.get_running_loop().time()}"

        task: asyncio.Task[Any] = asyncio.create_task(coro, name=task_name)
        metadata = TaskMetadata(task, task_name, task_type)
        self._active_tasks[task] = metadata
        self._task_names[task_name] = task
        if metadata.is_lifecycle:
            self._lifecycle_tasks.add(task)

        def task_completion_callback(completed_task: asyncio.Task[Any]):
            self._active_tasks.pop(completed_task, None)
            self._lifecycle_tasks.discard(completed_task)
            if self._task_names.get(task_name) is completed_task:
                del self._task_names[task_name]
            logger.debug("Task completed and cleaned up", task_name=task_name)

        task.add_done_callback(task_completion_callback)
        logger.debug("Registered task", task_name=task_name, task_type=task_type)
        return task

    def _resolve(self, task: str | asyncio.Task[Any]) -> asyncio.Task[Any] | None:
        if isinstance(task, str):
            return self._task_names.get(task)
        return task if task in self._active_tasks else None

    def unregister_task(self, task: str | asyncio.Task[Any]) -> bool:
        """
        Stop tracking a task without cancelling it.

        Args:
            task: Task reference or task name

        Returns:
            True if the task was tracked, False otherwise
        """
        target_task = self._resolve(task)
        if target_task is None:
            logger.debug("Task not found in registry", task=str(task))
            return False

        metadata = self._active_tasks.pop(target_task)
        if self._task_names.get(metadata.task_name) is target_task:
            del self._task_names[metadata.task_name]
        self._lifecycle_tasks.discard(target_task)
        logger.debug("Task unregistered", task_name=metadata.task_name)
        return True

    async def cancel_task(self, task: str | asyncio.Task[Any], wait_timeout: float = 2.0) -> bool:
        """
        Cancel a task and wait for it to finish.

        Args:
            task: Task reference or name
            wait_timeout: Maximum time to wait for cancellation completion

        Returns:
            True if the task is finished, False if not found or still running after the timeout
        """
        target_task = self._resolve(task)
        if target_task is None:
            logger.debug("Cancellation target not found", task=str(task))
            return False

        if target_task.done():
            return True

        target_task.cancel()
        try:
            await asyncio.wait_for(target_task, timeout=wait_timeout)
        except asyncio.CancelledError:
            logger.debug("Cancelled task successfully", task_name=target_task.get_name())
        except TimeoutError:
            logger.warning("Cancellation timeout reached", task_name=target_task.get_name())
            return False
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a task failing while it unwinds still counts as finished
            logger.error("Unexpected task completion error", task_name=target_task.get_name(), error=str(e))
        return True

    async def shutdown_all(self, timeout: float = 5.0) -> bool:
        """
        Cancel every tracked task and wait for them to finish.

        Lifecycle tasks are cancelled first, then the rest.

        Args:
            timeout: Time allowed for all tasks to finish after cancellation

        Returns:
            True if every task finished within the timeout
        """
        if self._shutdown_in_progress:
            logger.warning("Shutdown already in progress")
            return False
        self._shutdown_in_progress = True

        try:
            ordered = list(self._lifecycle_tasks) + [t for t in self._active_tasks if t not in self._lifecycle_tasks]
            cancelled_count = 0
            for task in ordered:
                if not task.done():
                    task.cancel()
                    cancelled_count += 1
            logger.info("Cancelled active tasks - awaiting completion", cancelled_count=cancelled_count)

            pending = list(self._active_tasks)
            if pending:
                _, still_running = await asyncio.wait(pending, timeout=timeout)
                if still_running:
                    logger.error(
                        "TaskRegistry shutdown timeout",
                        timeout=timeout,
                        remaining=[t.get_name() for t in still_running],
                    )
        finally:
            for task in list(self._active_tasks):
                if task.done():
                    self.unregister_task(task)
            self._shutdown_in_progress = False

        remaining = self.list_active_tasks()
        if remaining:
            logger.warning("Tasks still active after shutdown", active_tasks=[m.task_name for m in remaining])
            return False
        logger.info("All tracked tasks terminated")
        return True

    def list_active_tasks(self) -> list[TaskMetadata]:
        """Return list of currently registered TaskMetadata."""
        return [m for m in self._active_tasks.values() if not m.task.done()]

    def get_registry_info(self) -> dict[str, Any]:
        active = len(self.list_active_tasks())
        return {
            "active_tasks": active,
            "completed_tasks": len(self._active_tasks) - active,
            "lifecycle_tasks": len(self._lifecycle_tasks),
            "registry_shutdown_in_progress": self._shutdown_in_progress,
        }

    def __len__(self) -> int:
        return len(self._active_tasks)
