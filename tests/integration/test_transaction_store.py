"""
Repository tests against an in-memory SQLite database
"""

import pytest
from datetime import datetime
from models.base import EnrichmentStatus
from models.transaction import Transaction
from repositories.transactions import TransactionRepository
from repositories.vehicles import VehicleRepository


def build(vehicle="NJ-2702", day=15, amount=50.0, status=EnrichmentStatus.PENDING, batch=None):
    return Transaction(
        vehicle_number=vehicle,
        transaction_date=datetime(2025, 1, day, 8, 0, 0),
        product_type="diesel",
        quantity=30.0,
        total_amount=amount,
        currency="EUR",
        enrichment_status=status,
        import_batch_id=batch,
    )


@pytest.mark.asyncio
async def test_add_assigns_id_and_defaults(db_session):
    repo = TransactionRepository(db_session)

    transaction = await repo.add(build())

    assert transaction.id is not None
    assert transaction.created_at is not None
    fetched = await repo.get(transaction.id)
    assert fetched.enrichment_status == EnrichmentStatus.PENDING
    assert fetched.unit == "L"


@pytest.mark.asyncio
async def test_get_unknown_id(db_session):
    assert await TransactionRepository(db_session).get(999) is None


@pytest.mark.asyncio
async def test_get_all_filters_orders_and_paginates(db_session):
    repo = TransactionRepository(db_session)
    for day in (15, 17, 16):
        await repo.add(build(day=day))
    await repo.add(build(vehicle="OC-4485", day=18))

    newest_first = await repo.get_all(vehicle_number="NJ-2702")
    assert [t.transaction_date.day for t in newest_first] == [17, 16, 15]

    page = await repo.get_all(vehicle_number="NJ-2702", order_by="transaction_date ASC", limit=2, offset=1)
    assert [t.transaction_date.day for t in page] == [16, 17]

    assert await repo.count() == 4
    assert await repo.count(vehicle_number="NJ-2702") == 3


@pytest.mark.asyncio
async def test_get_all_rejects_unknown_order(db_session):
    with pytest.raises(ValueError):
        await TransactionRepository(db_session).get_all(order_by="card_number DESC")


@pytest.mark.asyncio
async def test_get_by_status_oldest_first(db_session):
    repo = TransactionRepository(db_session)
    first = await repo.add(build(day=20))
    await repo.add(build(day=10, status=EnrichmentStatus.COMPLETED))
    second = await repo.add(build(day=5))

    pending = await repo.get_by_status(EnrichmentStatus.PENDING, limit=10)

    assert [t.id for t in pending] == [first.id, second.id]
    assert len(await repo.get_by_status(EnrichmentStatus.PENDING, limit=1)) == 1


@pytest.mark.asyncio
async def test_count_by_status(db_session):
    repo = TransactionRepository(db_session)
    await repo.add(build())
    await repo.add(build())
    await repo.add(build(status=EnrichmentStatus.NOT_FOUND))

    assert await repo.count_by_status() == {"pending": 2, "not_found": 1}


@pytest.mark.asyncio
async def test_get_by_batch_id(db_session):
    repo = TransactionRepository(db_session)
    await repo.add(build(batch="import_a"))
    await repo.add(build(batch="import_b"))
    await repo.add(build(batch="import_a"))

    rows = await repo.get_by_batch_id("import_a")

    assert len(rows) == 2
    assert all(t.import_batch_id == "import_a" for t in rows)


@pytest.mark.asyncio
async def test_save_persists_enrichment(db_session):
    repo = TransactionRepository(db_session)
    transaction = await repo.add(build())

    transaction.apply_enrichment(latitude=56.9, longitude=24.1, odometer=1234)
    await repo.save(transaction)
    await repo.reload(transaction)

    assert transaction.enrichment_status == EnrichmentStatus.COMPLETED
    assert transaction.odometer_gps == 1234
    assert transaction.enriched_at is not None


@pytest.mark.asyncio
async def test_delete_all(db_session):
    repo = TransactionRepository(db_session)
    await repo.add(build())
    await repo.add(build())

    assert await repo.delete_all() == 2
    assert await repo.count() == 0
    assert await repo.delete_all() == 0


@pytest.mark.asyncio
async def test_vehicle_seed_and_lookup(db_session):
    vehicles = VehicleRepository(db_session)

    assert await vehicles.seed({"NJ-2702": 417038, "OC-4485": 199332}) == 2
    assert await vehicles.seed({"NJ-2702": 417038}) == 0

    assert await vehicles.get_unit_id(" nj-2702 ") == 417038
    assert await vehicles.get_unit_id("XX-0001") is None
