"""
만료 점검 스케줄러
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from lifecycle.config import SchedulerConfig, get_gym_settings, scheduler_config
from lifecycle.dates import get_zone, utcnow


class GymScheduler:
    """멤버십 만료 점검 스케줄러"""

    def __init__(
        self,
        sweep_func: Callable[[], Awaitable[object]],
        config: Optional[SchedulerConfig] = None,
        timezone: Optional[str] = None
    ):
        """
        Args:
            sweep_func: 만료 점검 함수 (async, 예외를 전파하지 않는 것을 권장)
            config: 스케줄 설정 (기본: 전역 scheduler_config)
            timezone: 크론 기준 타임존 (기본: GYM_TIMEZONE)
        """
        self.config = config or scheduler_config
        self.timezone = get_zone(timezone or get_gym_settings().timezone)
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.sweep_func = sweep_func
        self._is_running = False
        self._last_sweep: Optional[datetime] = None
        self._startup_task: Optional[asyncio.Task] = None

    def setup(self):
        """스케줄러 설정"""
        # 매일 자정 만료 점검
        self.scheduler.add_job(
            self._run_sweep,
            CronTrigger(hour=self.config.sweep_hour, minute=self.config.sweep_minute, timezone=self.timezone),
            id="daily_expiration_sweep",
            name="Daily Expiration Sweep",
            replace_existing=True
        )
        logger.info(
            f"매일 {self.config.sweep_hour:02d}:{self.config.sweep_minute:02d} "
            f"({self.timezone.key}) 만료 점검 스케줄 등록"
        )

    async def _run_sweep(self):
        """만료 점검 실행"""
        if self._is_running:
            logger.warning("이미 만료 점검이 진행 중입니다")
            return

        self._is_running = True
        try:
            await self.sweep_func()
            self._last_sweep = utcnow()
        except Exception as e:
            logger.error(f"만료 점검 오류: {e}")
        finally:
            self._is_running = False

    def start(self):
        """스케줄러 시작 (실행 중인 이벤트 루프 필요)"""
        self.setup()
        self.scheduler.start()
        logger.info("스케줄러 시작됨")

        if self.config.run_on_startup:
            logger.info("서버 시작 시 만료 점검 1회 실행")
            self._startup_task = asyncio.get_running_loop().create_task(self._run_sweep())

    def stop(self):
        """스케줄러 중지"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("스케줄러 중지됨")

    def get_status(self) -> dict:
        """스케줄러 상태 조회"""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None
            })

        return {
            "is_running": self._is_running,
            "timezone": self.timezone.key,
            "last_sweep": self._last_sweep.isoformat() if self._last_sweep else None,
            "jobs": jobs
        }

    async def run_now(self):
        """즉시 실행"""
        await self._run_sweep()
