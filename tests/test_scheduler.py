"""
Scheduler Tests - 만료 점검 스케줄러 테스트
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from lifecycle.config import SchedulerConfig
from scheduler.scheduler import GymScheduler


@pytest.fixture
def config():
    return SchedulerConfig(sweep_hour=0, sweep_minute=0, run_on_startup=False)


class TestGymScheduler:
    """스케줄러"""

    def test_setup_registers_daily_job(self, config):
        scheduler = GymScheduler(AsyncMock(), config=config, timezone="Asia/Seoul")
        scheduler.setup()

        jobs = scheduler.scheduler.get_jobs()
        assert [job.id for job in jobs] == ["daily_expiration_sweep"]
        assert str(jobs[0].trigger.timezone) == "Asia/Seoul"

    @pytest.mark.asyncio
    async def test_run_now(self, config):
        sweep = AsyncMock()
        scheduler = GymScheduler(sweep, config=config)

        await scheduler.run_now()

        sweep.assert_awaited_once()
        assert scheduler.get_status()["last_sweep"] is not None

    @pytest.mark.asyncio
    async def test_overlapping_runs_skipped(self, config):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_sweep():
            started.set()
            await release.wait()

        sweep = AsyncMock(side_effect=slow_sweep)
        scheduler = GymScheduler(sweep, config=config)

        first = asyncio.create_task(scheduler.run_now())
        await started.wait()
        await scheduler.run_now()
        release.set()
        await first

        assert sweep.await_count == 1

    @pytest.mark.asyncio
    async def test_errors_do_not_propagate(self, config):
        scheduler = GymScheduler(AsyncMock(side_effect=RuntimeError("boom")), config=config)

        await scheduler.run_now()

        status = scheduler.get_status()
        assert status["is_running"] is False
        assert status["last_sweep"] is None

    @pytest.mark.asyncio
    async def test_start_runs_once_on_startup(self):
        sweep = AsyncMock()
        scheduler = GymScheduler(sweep, config=SchedulerConfig(run_on_startup=True))

        scheduler.start()
        try:
            await scheduler._startup_task
        finally:
            scheduler.stop()

        sweep.assert_awaited_once()
