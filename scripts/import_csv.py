"""
Import a fuel card CSV export from disk.

Usage:
    python scripts/import_csv.py path/to/transactions.csv
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import async_session_maker
from core.exceptions import CSVImportError
from core.logging import setup_logging
from ingestion.csv_import import TransactionImporter
from repositories.transactions import TransactionRepository
from repositories.vehicles import VehicleRepository

logger = logging.getLogger(__name__)


async def import_file(file_path: str) -> int:
    async with async_session_maker() as session:
        importer = TransactionImporter(TransactionRepository(session), VehicleRepository(session))
        try:
            result = await importer.import_file(file_path)
        except CSVImportError as e:
            logger.error(f"Import failed: {e}")
            return 1

    logger.info(
        f"Batch {result.batch_id}: imported={result.imported}, "
        f"skipped={result.skipped}, failed={result.failed}"
    )
    for error in result.errors:
        logger.warning(error)
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)

    setup_logging()
    sys.exit(asyncio.run(import_file(sys.argv[1])))
