"""
TaskRegistry lifecycle management and tracking tests.

Tests validate task creation, lookup, cancellation and timeout-bounded
shutdown of background tasks.
"""

import asyncio
from unittest.mock import Mock

import pytest

from casino_hub.app.task_registry import TaskMetadata, TaskRegistry


class TestTaskRegistryCore:
    """Core TaskRegistry instantiation and basic management functionality."""

    def test_task_registry_initialization(self) -> None:
        task_registry = TaskRegistry()
        assert len(task_registry) == 0
        assert task_registry.get_registry_info()["registry_shutdown_in_progress"] is False

    @pytest.mark.asyncio
    async def test_task_metadata_construction(self) -> None:
        mock_task = Mock()
        metadata = TaskMetadata(mock_task, "periodic/heartbeat", "periodic")
        assert metadata.task_name == "periodic/heartbeat"
        assert metadata.task_type == "periodic"
        assert metadata.task is mock_task
        assert metadata.is_lifecycle is True

        writer = TaskMetadata(Mock(), "writer:abc", "writer")
        assert writer.is_lifecycle is False

    @pytest.mark.asyncio
    async def test_register_task_tracks_until_completion(self) -> None:
        """Completed tasks drop out of the registry automatically."""
        task_registry = TaskRegistry()

        async def simple_coro():
            await asyncio.sleep(0.01)
            return "completed"

        task = task_registry.register_task(simple_coro(), "test/simple_registration", "standard")

        assert len(task_registry) == 1
        assert task.get_name() == "test/simple_registration"
        assert await task == "completed"
        await asyncio.sleep(0)
        assert len(task_registry) == 0

    @pytest.mark.asyncio
    async def test_duplicate_task_name_handling(self) -> None:
        task_registry = TaskRegistry()

        task_1 = task_registry.register_task(asyncio.sleep(0.001), "duplicate_test", "test_type")
        task_2 = task_registry.register_task(asyncio.sleep(0.001), "duplicate_test", "test_type")

        assert task_1 is not task_2
        assert task_1.get_name() == "duplicate_test"
        assert task_2.get_name().startswith("duplicate_test_")
        await asyncio.gather(task_1, task_2)

    @pytest.mark.asyncio
    async def test_unregister_task_leaves_task_running(self) -> None:
        task_registry = TaskRegistry()
        task = task_registry.register_task(asyncio.sleep(0.01), "test/unregister_flow", "temp")

        assert task_registry.unregister_task(task) is True
        assert len(task_registry) == 0
        assert not task.done()
        await task

    def test_unregister_unknown_task(self) -> None:
        assert TaskRegistry().unregister_task("task/unknown_id") is False

    @pytest.mark.asyncio
    async def test_cancel_task_by_name(self) -> None:
        task_registry = TaskRegistry()
        registered_task = task_registry.register_task(asyncio.sleep(10), "cancel/by_name", "test_type")

        success = await task_registry.cancel_task("cancel/by_name", wait_timeout=0.5)

        assert success is True
        assert registered_task.cancelled()

    @pytest.mark.asyncio
    async def test_cancel_task_by_reference(self) -> None:
        task_registry = TaskRegistry()
        registered_task = task_registry.register_task(asyncio.sleep(10), "cancel/by_ref", "test_type")

        assert await task_registry.cancel_task(registered_task, wait_timeout=0.5) is True
        assert registered_task.cancelled()

    @pytest.mark.asyncio
    async def test_cancel_unknown_task(self) -> None:
        assert await TaskRegistry().cancel_task("cancel/missing") is False


class TestTaskRegistryShutdown:
    """TaskRegistry shutdown orchestration and timeout verification."""

    @pytest.mark.asyncio
    async def test_shutdown_all_no_tasks(self) -> None:
        task_registry = TaskRegistry()
        assert await task_registry.shutdown_all() is True

    @pytest.mark.asyncio
    async def test_shutdown_cancels_every_task(self) -> None:
        task_registry = TaskRegistry()

        periodic = task_registry.register_task(asyncio.sleep(100), "periodic/heartbeat", "periodic")
        writer = task_registry.register_task(asyncio.sleep(100), "writer:1", "writer")

        assert await task_registry.shutdown_all(timeout=1.0) is True
        assert periodic.cancelled()
        assert writer.cancelled()
        assert len(task_registry) == 0

    @pytest.mark.asyncio
    async def test_registration_denied_during_shutdown(self) -> None:
        task_registry = TaskRegistry()

        async def register_late():
            try:
                await asyncio.sleep(100)
            except asyncio.CancelledError:
                with pytest.raises(RuntimeError):
                    task_registry.register_task(asyncio.sleep(0), "late", "writer")
                raise

        task_registry.register_task(register_late(), "lifecycle/late", "lifecycle")
        assert await task_registry.shutdown_all(timeout=1.0) is True

    @pytest.mark.asyncio
    async def test_lifecycle_task_tracking(self) -> None:
        task_registry = TaskRegistry()

        lifecycle_task = task_registry.register_task(asyncio.sleep(0.01), "lifecycle", "lifecycle")
        normal_task = task_registry.register_task(asyncio.sleep(0.01), "normal", "normal")

        assert task_registry.get_registry_info()["lifecycle_tasks"] == 1
        assert [m.task_name for m in task_registry.list_active_tasks()] == ["lifecycle", "normal"]

        await asyncio.gather(lifecycle_task, normal_task)

    @pytest.mark.asyncio
    async def test_registry_info_dict(self) -> None:
        task_registry = TaskRegistry()
        task_registry.register_task(asyncio.sleep(0.001), "test/task_a", "task_type")
        task_registry.register_task(asyncio.sleep(0.001), "test/task_b", "task_type")

        info = task_registry.get_registry_info()

        assert info["active_tasks"] == 2
        assert info["completed_tasks"] == 0
        assert info["lifecycle_tasks"] == 0
        assert info["registry_shutdown_in_progress"] is False
        await task_registry.shutdown_all(timeout=1.0)
