"""
Unit tests for the enrichment engine
"""

import httpx
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock
from core.exceptions import StorageError, UnitDataNotFoundError, NetworkError
from enrichment.engine import (
    EnrichmentEngine,
    GPS_MISSING,
    MILEAGE_MISSING,
    ODOMETER_OUT_OF_RANGE,
    format_utc,
    round_odometer,
)
from enrichment.locks import TransactionLocks
from models.base import EnrichmentStatus
from schemas.telematics import UnitSample


def make_engine(sample=None, error=None):
    client = MagicMock()
    client.fetch_sample = AsyncMock(return_value=sample, side_effect=error)
    repository = MagicMock()
    repository.save = AsyncMock(side_effect=lambda t: t)
    repository.reload = AsyncMock(side_effect=lambda t: t)
    return EnrichmentEngine(client, repository, locks=TransactionLocks()), client, repository


FULL_SAMPLE = UnitSample(latitude=56.9496, longitude=24.1052, odometer=123456.5)


class TestHelpers:

    def test_format_utc_naive(self):
        assert format_utc(datetime(2025, 1, 15, 8, 30, 5, 999)) == "2025-01-15T08:30:05Z"

    def test_format_utc_converts_offsets(self):
        riga = timezone(timedelta(hours=2))
        assert format_utc(datetime(2025, 1, 15, 10, 30, tzinfo=riga)) == "2025-01-15T08:30:00Z"

    def test_format_utc_string(self):
        assert format_utc("2025-01-15 08:30:00") == "2025-01-15T08:30:00Z"

    @pytest.mark.parametrize("value,expected", [
        (1e30, 10 ** 30),
        (123456.5, 123457),
        (123456.49, 123456),
        (2.5, 3),
        (0.0, 0),
    ])
    def test_round_odometer(self, value, expected):
        assert round_odometer(value) == expected


class TestEnrichOne:
    """Test single transaction outcomes"""

    @pytest.mark.asyncio
    async def test_completed(self, make_transaction):
        engine, client, repository = make_engine(sample=FULL_SAMPLE)
        transaction = make_transaction()

        result = await engine.enrich_one(transaction)

        assert result.enrichment_status == EnrichmentStatus.COMPLETED
        assert result.gps_latitude == pytest.approx(56.9496)
        assert result.gps_longitude == pytest.approx(24.1052)
        assert result.odometer_gps == 123457
        assert result.enriched_at is not None
        assert result.enrichment_message is None
        repository.save.assert_awaited_once_with(transaction)
        client.fetch_sample.assert_awaited_once()
        assert client.fetch_sample.await_args.kwargs["unit_id"] == 417038
        assert client.fetch_sample.await_args.kwargs["at"] == "2025-01-15T08:30:00Z"
        assert engine.outcome.completed == 1

    @pytest.mark.asyncio
    async def test_missing_mileage_fails(self, make_transaction):
        engine, _, repository = make_engine(sample=UnitSample(latitude=56.9, longitude=24.1))

        result = await engine.enrich_one(make_transaction())

        assert result.enrichment_status == EnrichmentStatus.FAILED
        assert result.enrichment_message == MILEAGE_MISSING
        assert result.gps_latitude is None
        assert result.enriched_at is None
        assert engine.latest_message == MILEAGE_MISSING
        assert engine.outcome.failed == 1
        repository.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_gps_fails(self, make_transaction):
        engine, _, _ = make_engine(sample=UnitSample(latitude=56.9, odometer=1000.0))

        result = await engine.enrich_one(make_transaction())

        assert result.enrichment_status == EnrichmentStatus.FAILED
        assert result.enrichment_message == GPS_MISSING
        assert result.odometer_gps is None

    @pytest.mark.asyncio
    async def test_mileage_checked_before_gps(self, make_transaction):
        engine, _, _ = make_engine(sample=UnitSample())

        result = await engine.enrich_one(make_transaction())

        assert result.enrichment_message == MILEAGE_MISSING

    @pytest.mark.asyncio
    async def test_odometer_out_of_range_fails(self, make_transaction):
        engine, _, repository = make_engine(sample=UnitSample(latitude=56.9, longitude=24.1, odometer=1e30))

        result = await engine.enrich_one(make_transaction())

        assert result.enrichment_status == EnrichmentStatus.FAILED
        assert result.enrichment_message == ODOMETER_OUT_OF_RANGE
        assert result.odometer_gps is None
        repository.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_client_error_is_not_found(self, make_transaction):
        error = UnitDataNotFoundError("Unit data not found for unit 417038 at 2025-01-15T08:30:00Z")
        engine, _, repository = make_engine(error=error)

        result = await engine.enrich_one(make_transaction())

        assert result.enrichment_status == EnrichmentStatus.NOT_FOUND
        assert result.enrichment_message == (
            "Enrichment not found: API error: Unit data not found for unit 417038 at 2025-01-15T08:30:00Z"
        )
        assert result.enriched_at is None
        assert engine.outcome.not_found == 1
        repository.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_network_error_is_not_found(self, make_transaction):
        engine, _, _ = make_engine(error=NetworkError("Network error while calling Mapon"))

        result = await engine.enrich_one(make_transaction())

        assert result.enrichment_status == EnrichmentStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unmapped_vehicle_fails_without_calling_mapon(self, make_transaction):
        engine, client, _ = make_engine(sample=FULL_SAMPLE)

        result = await engine.enrich_one(make_transaction(mapon_unit_id=None))

        assert result.enrichment_status == EnrichmentStatus.FAILED
        assert "NJ-2702" in result.enrichment_message
        client.fetch_sample.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_completed_transaction_is_skipped(self, make_transaction):
        engine, client, repository = make_engine(sample=FULL_SAMPLE)
        transaction = make_transaction(
            enrichment_status=EnrichmentStatus.COMPLETED,
            gps_latitude=1.0,
            gps_longitude=2.0,
            odometer_gps=3,
        )

        result = await engine.enrich_one(transaction)

        assert result.odometer_gps == 3
        assert engine.outcome.skipped == 1
        client.fetch_sample.assert_not_awaited()
        repository.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_transaction_is_retried(self, make_transaction):
        engine, client, _ = make_engine(sample=FULL_SAMPLE)
        transaction = make_transaction(
            enrichment_status=EnrichmentStatus.FAILED,
            enrichment_message=MILEAGE_MISSING,
        )

        result = await engine.enrich_one(transaction)

        assert result.enrichment_status == EnrichmentStatus.COMPLETED
        assert result.enrichment_message is None
        client.fetch_sample.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reloads_before_deciding(self, make_transaction):
        engine, client, repository = make_engine(sample=FULL_SAMPLE)
        transaction = make_transaction()

        async def completed_elsewhere(t):
            t.enrichment_status = EnrichmentStatus.COMPLETED
            return t

        repository.reload.side_effect = completed_elsewhere

        await engine.enrich_one(transaction)

        assert engine.outcome.skipped == 1
        client.fetch_sample.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self, make_transaction):
        engine, _, repository = make_engine(sample=FULL_SAMPLE)
        repository.save.side_effect = StorageError("Failed to write transaction")

        with pytest.raises(StorageError):
            await engine.enrich_one(make_transaction())

        assert engine.outcome.completed == 0


class TestEnrichBatch:
    """Test batch processing and lifetime counters"""

    @pytest.mark.asyncio
    async def test_batch_summary(self, make_transaction):
        engine, client, _ = make_engine()
        client.fetch_sample.side_effect = [
            FULL_SAMPLE,
            UnitSample(latitude=1.0, longitude=2.0),
            UnitDataNotFoundError("Unit data not found"),
        ]
        transactions = [
            make_transaction(id=1),
            make_transaction(id=2),
            make_transaction(id=3),
            make_transaction(id=4, enrichment_status=EnrichmentStatus.COMPLETED),
            make_transaction(id=5, mapon_unit_id=None),
        ]

        summary = await engine.enrich_batch(transactions)

        assert summary == {"completed": 1, "failed": 2, "not_found": 1, "skipped": 1}
        assert [t.enrichment_status for t in transactions] == [
            EnrichmentStatus.COMPLETED,
            EnrichmentStatus.FAILED,
            EnrichmentStatus.NOT_FOUND,
            EnrichmentStatus.COMPLETED,
            EnrichmentStatus.FAILED,
        ]
        # Processed in order, one Mapon call per unenriched mapped transaction
        assert client.fetch_sample.await_count == 3

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        engine, _, _ = make_engine()

        summary = await engine.enrich_batch([])

        assert summary == {"completed": 0, "failed": 0, "not_found": 0, "skipped": 0}

    @pytest.mark.asyncio
    async def test_counters_accumulate_across_batches(self, make_transaction):
        engine, _, _ = make_engine(sample=FULL_SAMPLE)

        await engine.enrich_batch([make_transaction(id=1)])
        summary = await engine.enrich_batch([make_transaction(id=2), make_transaction(id=1, enrichment_status=EnrichmentStatus.COMPLETED)])

        assert summary == {"completed": 2, "failed": 0, "not_found": 0, "skipped": 1}

    @pytest.mark.asyncio
    async def test_storage_error_stops_batch(self, make_transaction):
        engine, client, repository = make_engine(sample=FULL_SAMPLE)
        repository.save.side_effect = [make_transaction(id=1), StorageError("disk full")]

        with pytest.raises(StorageError):
            await engine.enrich_batch([make_transaction(id=1), make_transaction(id=2), make_transaction(id=3)])

        assert client.fetch_sample.await_count == 2

    @pytest.mark.asyncio
    async def test_malformed_unit_payload_does_not_stop_batch(
        self, make_transaction, mapon_client_factory, mapon_payload, mapon_unit
    ):
        responses = [
            mapon_payload({"unit_id": 417038, "mileage": 200345, "position": {"value": {"lat": 56.9, "lng": 24.1}}}),
            mapon_payload(mapon_unit()),
        ]
        client = mapon_client_factory(lambda request: httpx.Response(200, json=responses.pop(0)))
        repository = MagicMock()
        repository.save = AsyncMock(side_effect=lambda t: t)
        repository.reload = AsyncMock(side_effect=lambda t: t)
        engine = EnrichmentEngine(client, repository, locks=TransactionLocks())
        transactions = [make_transaction(id=1), make_transaction(id=2)]

        summary = await engine.enrich_batch(transactions)

        assert summary == {"completed": 1, "failed": 1, "not_found": 0, "skipped": 0}
        assert transactions[0].enrichment_message == MILEAGE_MISSING
        assert transactions[1].enrichment_status == EnrichmentStatus.COMPLETED
