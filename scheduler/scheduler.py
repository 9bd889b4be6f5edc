"""
Attendance reconciliation scheduler

출결 정합성 점검 스케줄러
"""
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.club.config import get_club_settings


class ClubScheduler:
    """클럽 서비스 주기 유지보수 작업"""

    def __init__(self, reconcile_func, interval_minutes: Optional[int] = None):
        """
        Args:
            reconcile_func: 정합성 점검 함수 (async, ReconciliationReport 반환)
            interval_minutes: 기본값 CLUB_RECONCILE_INTERVAL_MINUTES
        """
        self.scheduler = AsyncIOScheduler()
        self.reconcile_func = reconcile_func
        self.interval_minutes = interval_minutes or get_club_settings().RECONCILE_INTERVAL_MINUTES
        self._is_running = False

    def setup(self):
        self.scheduler.add_job(
            self._run_reconcile,
            IntervalTrigger(minutes=self.interval_minutes),
            id="attendance_reconcile",
            name="Attendance Reconciliation",
            replace_existing=True
        )
        logger.info(f"출결 정합성 점검 스케줄 등록: {self.interval_minutes}분마다")

    async def _run_reconcile(self):
        if self._is_running:
            logger.warning("정합성 점검이 이미 실행 중, 건너뜀")
            return

        self._is_running = True
        try:
            await self.reconcile_func()
        except Exception as e:
            # 다음 주기에 재시도 - 작업은 계속 유지
            logger.error(f"정합성 점검 오류: {e}")
        finally:
            self._is_running = False

    def start(self):
        self.setup()
        self.scheduler.start()
        logger.info("스케줄러 시작")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("스케줄러 중지")
