"""
Shared FastAPI dependencies
"""

from typing import AsyncGenerator, Optional
from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.database import get_session
from enrichment.telematics_client import MaponClient
from api.errors import UnauthorizedError


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session for one request"""
    async for session in get_session():
        yield session


def get_mapon_client() -> MaponClient:
    return MaponClient()


async def verify_api_key(authorization: Optional[str] = Header(None)) -> None:
    """
    Check the bearer token against INTERNAL_API_KEY.

    Disabled when INTERNAL_API_KEY is not configured.
    """
    expected = settings.INTERNAL_API_KEY
    if not expected:
        return

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or token.strip() != expected:
        raise UnauthorizedError("Invalid or missing API key")
