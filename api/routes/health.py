"""
Health check endpoint with database and enrichment status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_db
from core.config import settings
from core.exceptions import StorageError
from repositories.transactions import TransactionRepository
from schemas.api import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Transaction counts per enrichment status
    - Whether a Mapon API key is configured
    """
    db_connected = False
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {str(e)}")

    by_status = {}
    if db_connected:
        try:
            by_status = await TransactionRepository(db).count_by_status()
        except StorageError as e:
            logger.error(f"Failed to count transactions: {e.message}")

    return HealthCheckResponse(
        status="healthy" if db_connected else "unhealthy",
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        transactions_by_status=by_status,
        telematics_configured=bool(settings.MAPON_API_KEY),
    )
