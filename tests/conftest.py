"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
import httpx
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from models.base import Base, EnrichmentStatus
from models.transaction import Transaction
from models.vehicle import Vehicle  # noqa: F401
from enrichment.telematics_client import MaponClient
from typing import AsyncGenerator

# In-memory database shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SEED_VEHICLES = {"NJ-2702": 417038, "OC-4485": 199332}

HEADER = "Date,Time,Card Nr.,Vehicle Nr.,Product,Amount,Total sum,Currency,Country,Country ISO,Fuel station"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sample_csv():
    """
    Provider export with one row of each interesting kind:

    row 2: diesel, mapped vehicle
    row 3: petrol, decimal commas, DD.MM.YYYY date
    row 4: car wash (skipped)
    row 5: AdBlue in PLN, unmapped vehicle
    row 6: diesel with no quantity (failed)
    """
    return "\n".join([
        HEADER,
        "2025-01-15,08:30:00,7083 1234 5678 9012,NJ-2702,Diesel,52.30,78.45,EUR,Latvia,LV,Circle K Riga",
        '15.01.2025,12:05,7083123456789012,OC-4485,Petrol 95,"40,10","62,15",EUR,Lithuania,LT,Viada Vilnius',
        "2025-01-16,09:00:00,7083123456789012,NJ-2702,Car wash,1,12.00,EUR,Latvia,LV,Circle K Riga",
        "2025-01-16,10:00:00,7083123456789012,XX-0001,AdBlue,10,15.00,PLN,Poland,PL,Orlen",
        "2025-01-17,11:00:00,7083123456789012,NJ-2702,Diesel,,30.00,EUR,Latvia,LV,Circle K Riga",
    ])


@pytest.fixture
def make_transaction():
    """Factory for unsaved Transaction rows"""
    def _make(**overrides):
        values = {
            "id": 1,
            "vehicle_number": "NJ-2702",
            "transaction_date": datetime(2025, 1, 15, 8, 30, 0),
            "product_type": "diesel",
            "quantity": 52.3,
            "unit": "L",
            "total_amount": 78.45,
            "currency": "EUR",
            "mapon_unit_id": 417038,
            "enrichment_status": EnrichmentStatus.PENDING,
        }
        values.update(overrides)
        return Transaction(**values)
    return _make


def _mapon_unit(lat=56.9496, lng=24.1052, mileage=123456.7, gmt="2025-01-15T08:29:51Z", unit_id=417038):
    """One element of data.units as returned by unit_data/history_point.json"""
    unit = {"unit_id": unit_id}
    if lat is not None or lng is not None:
        unit["position"] = {"value": {"lat": lat, "lng": lng}, "gmt": gmt}
    if mileage is not None:
        unit["mileage"] = {"value": mileage}
    return unit


def _mapon_payload(*units):
    return {"data": {"units": list(units)}}


@pytest.fixture
def mapon_unit():
    return _mapon_unit


@pytest.fixture
def mapon_payload():
    return _mapon_payload


@pytest.fixture
def mapon_client_factory():
    """
    Build a MaponClient whose HTTP calls are answered by `handler`.

    `handler` is either an httpx.Request -> httpx.Response callable or a
    JSON-serialisable payload returned with status 200. Requests are
    recorded on `client.requests`.
    """
    def _factory(handler):
        requests = []

        def _handle(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if callable(handler):
                return handler(request)
            return httpx.Response(200, json=handler)

        client = MaponClient(
            api_url="https://mapon.test/api/v1",
            api_key="test-key",
            timeout=5,
            transport=httpx.MockTransport(_handle),
        )
        client.requests = requests
        return client
    return _factory
