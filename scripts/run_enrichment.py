"""
Enrich pending transactions once, outside the API scheduler.

Usage:
    python scripts/run_enrichment.py [limit]
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import async_session_maker
from core.logging import setup_logging
from enrichment.engine import EnrichmentEngine
from enrichment.telematics_client import MaponClient
from models.base import EnrichmentStatus
from repositories.transactions import TransactionRepository

logger = logging.getLogger(__name__)


async def run_enrichment(limit: int):
    """Enrich up to `limit` pending transactions, oldest first"""
    async with async_session_maker() as session:
        repository = TransactionRepository(session)
        pending = await repository.get_by_status(EnrichmentStatus.PENDING, limit=limit)
        if not pending:
            logger.info("No pending transactions")
            return

        logger.info(f"Enriching {len(pending)} pending transactions")
        engine = EnrichmentEngine(MaponClient(), repository)
        summary = await engine.enrich_batch(pending)
        logger.info(f"Enrichment finished: {summary}")
        if engine.latest_message:
            logger.info(f"Last problem: {engine.latest_message}")


if __name__ == "__main__":
    setup_logging()
    limit = int(sys.argv[1]) if len(sys.argv) > 1 else settings.ENRICHMENT_BATCH_SIZE
    asyncio.run(run_enrichment(limit))
