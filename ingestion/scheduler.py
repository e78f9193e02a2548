import logging
import asyncio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from core.config import Settings, load_settings
from core.logging import setup_logging
from ingestion.runner import run_reports

logger = logging.getLogger(__name__)


class ReportScheduler:
    """Fires one report pass per SCHEDULE_CRON tick (UTC)"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    async def run_report_job(self):
        """Job to run every enabled report"""
        logger.info("Scheduler: Starting report pass")
        try:
            summary = await run_reports(self.settings)
            if summary.failures:
                logger.warning(f"Scheduler: report pass finished with failures: {summary.failures}")
        except Exception as e:
            logger.error(f"Scheduler: report pass failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_report_job,
            trigger=CronTrigger.from_crontab(self.settings.SCHEDULE_CRON, timezone="UTC"),
            id="report_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Report scheduler started ({self.settings.SCHEDULE_CRON})")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Report scheduler stopped")


async def serve(settings: Settings):
    scheduler = ReportScheduler(settings)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()


def main():
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)
    settings.validate_for_run()
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
