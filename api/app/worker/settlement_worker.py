"""
Settlement Worker

Fires the daily revenue distribution at 00:00 Washington time (by default) and
exposes a manual trigger for operational recovery. Both paths end up in the
same idempotent DistributionService.settle(date).

Uses APScheduler for job scheduling. The scheduler handle is owned by a
DistributionScheduler instance, created by whoever runs it (the API lifespan or
this module's main()).
"""
import asyncio
import logging
from datetime import date
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.services.distribution_service import (
    DistributionService, SettlementGuard, default_settlement_date,
)

logger = logging.getLogger('settlement_worker')

JOB_ID = 'daily_distribution'


class DistributionScheduler:
    """Start/stop/status handle around the daily distribution job."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        guard: SettlementGuard | None = None,
        timezone: str | None = None,
        hour: int | None = None,
        minute: int | None = None,
    ):
        self.session_factory = session_factory
        self.guard = guard or SettlementGuard()
        self.timezone = timezone or settings.distribution_timezone
        self.hour = settings.distribution_hour if hour is None else hour
        self.minute = settings.distribution_minute if minute is None else minute
        self.scheduler: AsyncIOScheduler | None = None

    @property
    def schedule(self) -> str:
        return f'{self.minute} {self.hour} * * *'

    @property
    def is_running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def start(self) -> None:
        """Register the daily job and start the scheduler. Must run inside an event loop."""
        if self.is_running:
            logger.warning('Distribution job already running')
            return

        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.scheduler.add_job(
            self._run_daily_distribution,
            CronTrigger(hour=self.hour, minute=self.minute, timezone=self.timezone),
            id=JOB_ID,
            name='Daily Revenue Distribution',
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f'Distribution job started ({self.schedule} {self.timezone}), next run: {self.next_run()}')

    def stop(self) -> None:
        if not self.is_running:
            return
        self.scheduler.shutdown(wait=False)
        self.scheduler = None
        logger.info('Distribution job stopped')

    def next_run(self):
        if not self.is_running:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def status(self) -> dict:
        return {
            'is_running': self.is_running,
            'next_run': self.next_run(),
            'timezone': self.timezone,
            'schedule': self.schedule,
        }

    async def run_now(self, settle_date: date | None = None) -> dict:
        """Manual trigger. Runs settlement in its own session."""
        settle_date = settle_date or default_settlement_date()
        logger.info(f'Manual distribution triggered for {settle_date}')
        return await self._settle(settle_date)

    async def _run_daily_distribution(self) -> dict:
        """Scheduled run for yesterday's points."""
        logger.info('Running daily distribution...')
        return await self._settle(default_settlement_date())

    async def _settle(self, settle_date: date) -> dict:
        try:
            async with self.session_factory() as session:
                service = DistributionService(session, guard=self.guard)
                result = await service.settle(settle_date)

            if result['success']:
                logger.info(f'Distribution result: {result["stats"]}')
            else:
                logger.info(f'Distribution skipped: {result["reason"]}')
            return result
        except Exception as e:
            logger.error(f'Daily distribution failed: {e}', exc_info=True)
            raise


async def main():
    """Entry point for the standalone worker."""
    from app.db.database import async_session

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    worker = DistributionScheduler(async_session)
    worker.start()

    # Keep running
    try:
        while True:
            await asyncio.sleep(60)
    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        logger.info('Shutting down...')
        worker.stop()


if __name__ == '__main__':
    asyncio.run(main())
