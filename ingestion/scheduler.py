import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from ingestion.service import IngestionService

logger = logging.getLogger(__name__)


class IngestionScheduler:
    def __init__(self, service: IngestionService, interval_minutes: int = 30):
        self.service = service
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler()

    @property
    def enabled(self) -> bool:
        return self.interval_minutes > 0

    async def run_ingestion_job(self):
        """Job to run every registered source"""
        logger.info("Scheduler: Starting ingestion job")
        try:
            await self.service.ingest_all()
        except Exception as e:
            logger.error(f"Scheduler: ingestion job failed - {e}")

    def start(self):
        """Start the scheduler"""
        if not self.enabled:
            logger.info("Ingestion scheduler disabled (INGESTION_INTERVAL_MINUTES=0)")
            return
        self.scheduler.add_job(
            self.run_ingestion_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="ingestion_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Ingestion scheduler started (every {self.interval_minutes} minutes)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Ingestion scheduler stopped")
