import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from core.config import settings
from enrichment.engine import EnrichmentEngine
from enrichment.telematics_client import MaponClient
from models.base import EnrichmentStatus
from repositories.transactions import TransactionRepository

logger = logging.getLogger(__name__)


class EnrichmentScheduler:
    """Periodically enriches pending transactions"""

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self.engine = create_async_engine(settings.DATABASE_URL, echo=False)
        self.SessionLocal = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def run_enrichment_job(self):
        """Job to enrich the oldest pending transactions"""
        logger.info("Scheduler: Starting enrichment job")
        async with self.SessionLocal() as session:
            try:
                repository = TransactionRepository(session)
                pending = await repository.get_by_status(
                    EnrichmentStatus.PENDING, limit=settings.ENRICHMENT_BATCH_SIZE
                )
                if not pending:
                    logger.info("Scheduler: No pending transactions")
                    return

                enrichment = EnrichmentEngine(MaponClient(), repository)
                summary = await enrichment.enrich_batch(pending)
                logger.info(f"Scheduler: Enrichment job finished - {summary}")

            except Exception as e:
                logger.error(f"Scheduler: Enrichment job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_enrichment_job,
            trigger=IntervalTrigger(minutes=settings.ENRICHMENT_INTERVAL_MINUTES),
            id="enrichment_job",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info("Enrichment scheduler started")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Enrichment scheduler stopped")
