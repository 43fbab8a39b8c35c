"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Dict, Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./fuel.db"

    # API
    INTERNAL_API_KEY: Optional[str] = None
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Mapon telematics provider
    MAPON_API_URL: str = "https://mapon.com/api/v1"
    MAPON_API_KEY: Optional[str] = None
    MAPON_TIMEOUT_SECONDS: float = 10.0

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Import
    BASE_CURRENCY: str = "EUR"
    EXCHANGE_RATES: Dict[str, float] = {}  # currency -> multiplier into BASE_CURRENCY
    DEFAULT_UNIT: str = "L"

    # Enrichment
    ENRICHMENT_SCHEDULER_ENABLED: bool = False
    ENRICHMENT_INTERVAL_MINUTES: int = 30
    ENRICHMENT_BATCH_SIZE: int = 20

    # Vehicle -> Mapon unit mapping seeded by scripts/init_db.py
    SEED_VEHICLES: Dict[str, int] = {
        "NJ-2702": 417038,
        "OC-4485": 199332,
    }

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
