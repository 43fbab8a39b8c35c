"""
Integration test: CSV import -> Mapon enrichment -> verify stored state
"""

import httpx
import pytest
from ingestion.csv_import import TransactionImporter
from enrichment.engine import EnrichmentEngine, MILEAGE_MISSING
from enrichment.locks import TransactionLocks
from models.base import EnrichmentStatus
from repositories.transactions import TransactionRepository
from repositories.vehicles import VehicleRepository

SEED = {"NJ-2702": 417038, "OC-4485": 199332}


async def import_sample(db_session, csv_data):
    await VehicleRepository(db_session).seed(SEED)
    importer = TransactionImporter(TransactionRepository(db_session), VehicleRepository(db_session))
    return await importer.import_csv(csv_data)


@pytest.mark.asyncio
async def test_import_persists_batch(db_session, sample_csv):
    result = await import_sample(db_session, sample_csv)

    assert (result.imported, result.skipped, result.failed) == (3, 1, 1)

    rows = await TransactionRepository(db_session).get_by_batch_id(result.batch_id)
    assert [t.vehicle_number for t in rows] == ["NJ-2702", "OC-4485", "XX-0001"]
    assert [t.mapon_unit_id for t in rows] == [417038, 199332, None]
    assert all(t.enrichment_status == EnrichmentStatus.PENDING for t in rows)


@pytest.mark.asyncio
async def test_each_import_gets_its_own_batch(db_session, sample_csv):
    first = await import_sample(db_session, sample_csv)
    second = await import_sample(db_session, sample_csv)

    assert first.batch_id != second.batch_id
    repo = TransactionRepository(db_session)
    assert len(await repo.get_by_batch_id(first.batch_id)) == 3
    assert len(await repo.get_by_batch_id(second.batch_id)) == 3
    assert await repo.count() == 6


@pytest.mark.asyncio
async def test_enrichment_round_trip(db_session, sample_csv, mapon_client_factory, mapon_payload, mapon_unit):
    await import_sample(db_session, sample_csv)

    def handler(request):
        unit_id = int(request.url.params["unit_id"])
        if unit_id == 417038:
            return httpx.Response(200, json=mapon_payload(mapon_unit(mileage=200345.5)))
        # OC-4485 answers without mileage
        return httpx.Response(200, json=mapon_payload(mapon_unit(unit_id=unit_id, mileage=None)))

    client = mapon_client_factory(handler)
    repo = TransactionRepository(db_session)
    pending = await repo.get_by_status(EnrichmentStatus.PENDING, limit=10)

    engine = EnrichmentEngine(client, repo, locks=TransactionLocks())
    summary = await engine.enrich_batch(pending)

    assert summary == {"completed": 1, "failed": 2, "not_found": 0, "skipped": 0}
    # The unmapped vehicle never reaches Mapon
    assert len(client.requests) == 2

    by_vehicle = {t.vehicle_number: t for t in await repo.get_all()}
    assert by_vehicle["NJ-2702"].enrichment_status == EnrichmentStatus.COMPLETED
    assert by_vehicle["NJ-2702"].odometer_gps == 200346
    assert by_vehicle["OC-4485"].enrichment_status == EnrichmentStatus.FAILED
    assert by_vehicle["OC-4485"].enrichment_message == MILEAGE_MISSING
    assert by_vehicle["XX-0001"].enrichment_status == EnrichmentStatus.FAILED

    # A second pass skips what is already enriched and retries OC-4485
    again = EnrichmentEngine(client, repo, locks=TransactionLocks())
    await again.enrich_batch(await repo.get_all())
    assert again.outcome.skipped == 1
    assert len(client.requests) == 3


@pytest.mark.asyncio
async def test_provider_outage_marks_not_found(db_session, sample_csv, mapon_client_factory):
    await import_sample(db_session, sample_csv)
    client = mapon_client_factory(lambda request: httpx.Response(503, text="maintenance"))
    repo = TransactionRepository(db_session)

    engine = EnrichmentEngine(client, repo, locks=TransactionLocks())
    summary = await engine.enrich_batch(await repo.get_by_status(EnrichmentStatus.PENDING, limit=10))

    assert summary["not_found"] == 2
    assert engine.latest_message is not None
    not_found = await repo.get_by_status(EnrichmentStatus.NOT_FOUND, limit=10)
    assert all(t.enrichment_message.startswith("Enrichment not found: API error:") for t in not_found)
    assert all(t.enriched_at is None for t in not_found)
