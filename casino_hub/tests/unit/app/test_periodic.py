"""
Tests for the periodic job runner.
"""

import asyncio

import pytest

from casino_hub.app.periodic import run_periodic


@pytest.mark.asyncio
async def test_runs_sync_job_repeatedly():
    calls = []
    task = asyncio.create_task(run_periodic("tick", 0.01, lambda: calls.append(1)))

    await asyncio.sleep(0.08)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_awaits_async_job():
    done = asyncio.Event()

    async def job():
        done.set()

    task = asyncio.create_task(run_periodic("async", 0.01, job))
    await asyncio.wait_for(done.wait(), timeout=1.0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_failing_round_does_not_stop_loop():
    calls = []

    def job():
        calls.append(1)
        if len(calls) == 1:
            raise ValueError("boom")

    task = asyncio.create_task(run_periodic("flaky", 0.01, job))
    await asyncio.sleep(0.08)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_first_run_waits_one_interval():
    calls = []
    task = asyncio.create_task(run_periodic("slow", 10.0, lambda: calls.append(1)))

    await asyncio.sleep(0.02)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert calls == []
