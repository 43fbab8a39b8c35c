"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, transactions, database
from api.errors import register_exception_handlers
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
from enrichment.scheduler import EnrichmentScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Fuel Transaction Service",
    description="Fuel card CSV import with Mapon GPS and odometer enrichment",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)

# Background enrichment, only started when enabled
scheduler = EnrichmentScheduler() if settings.ENRICHMENT_SCHEDULER_ENABLED else None


# Include routers
app.include_router(health.router)
app.include_router(transactions.router)
app.include_router(database.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Fuel Transaction Service")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if not settings.MAPON_API_KEY:
        logger.warning("MAPON_API_KEY is not set, enrichment requests will be rejected by Mapon")

    if scheduler is not None:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Fuel Transaction Service")
    if scheduler is not None:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Fuel Transaction Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "methods": {
            "Transaction__GetList": "/rpc/transaction/getList",
            "Transaction__Import": "/rpc/transaction/import",
            "Transaction__Enrich": "/rpc/transaction/enrich",
            "Transaction__EnrichAll": "/rpc/transaction/enrichAll",
            "Database__Clear": "/rpc/database/clear",
        }
    }
