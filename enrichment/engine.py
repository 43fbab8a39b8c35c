"""
GPS / odometer enrichment of fuel transactions.

For every transaction the engine fetches the Mapon history point at the
purchase time, validates it, applies it and persists the outcome:

    completed  - position and odometer applied
    not_found  - the provider gave no usable answer (any client failure)
    failed     - the answer was incomplete, or the vehicle has no unit id
    skipped    - already completed, nothing done

Outcome counters live on the engine instance and are never reset, so a
caller that wants per-batch numbers uses a fresh engine per batch.
Storage errors are not outcomes: they propagate to the caller.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Dict, Iterable, Optional, Union
from core.exceptions import (
    TelematicsError,
    EnrichmentNotFoundError,
    EnrichmentFailedError,
)
from enrichment.locks import TransactionLocks, transaction_locks
from enrichment.telematics_client import MaponClient, DEFAULT_INCLUDE
from models.transaction import Transaction
from repositories.transactions import TransactionRepository
from schemas.api import EnrichmentOutcome
from schemas.telematics import UnitSample
import logging

logger = logging.getLogger(__name__)

MILEAGE_MISSING = "Mileage data missing."
GPS_MISSING = "Invalid enrichment data: missing GPS coordinates."
ODOMETER_OUT_OF_RANGE = "Invalid enrichment data: odometer out of range."

# Largest value the odometer_gps column holds
MAX_ODOMETER = 2_147_483_647


def format_utc(value: Union[datetime, str]) -> str:
    """Format a transaction timestamp as ISO-8601 UTC with second precision."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00").replace(" ", "T"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def round_odometer(value: float) -> int:
    """Nearest whole unit, halves rounded away from zero."""
    number = Decimal(str(value))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, number.adjusted() + 2)
        return int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class EnrichmentEngine:
    """
    Drives per-transaction enrichment and keeps outcome counters.

    Attributes:
        outcome: Counters accumulated over the lifetime of this instance
        latest_message: Most recent not_found/failed diagnostic
    """

    def __init__(
        self,
        client: MaponClient,
        repository: TransactionRepository,
        locks: Optional[TransactionLocks] = None
    ):
        self.client = client
        self.repository = repository
        self.locks = locks or transaction_locks
        self.outcome = EnrichmentOutcome()
        self.latest_message: Optional[str] = None

    async def enrich_one(self, transaction: Transaction) -> Transaction:
        """
        Enrich a single transaction.

        Idempotent: a completed transaction is counted as skipped and
        returned unchanged without calling Mapon.
        """
        async with self.locks.hold(transaction.id):
            await self.repository.reload(transaction)
            return await self._enrich(transaction)

    async def enrich_batch(self, transactions: Iterable[Transaction]) -> Dict[str, int]:
        """
        Enrich transactions one after another, in the given order.

        Returns:
            {completed, failed, not_found, skipped} for the engine's lifetime
        """
        for transaction in transactions:
            await self.enrich_one(transaction)

        logger.info(
            f"Enrichment totals: completed={self.outcome.completed}, failed={self.outcome.failed}, "
            f"not_found={self.outcome.not_found}, skipped={self.outcome.skipped}"
        )
        return self.outcome.as_dict()

    async def _enrich(self, transaction: Transaction) -> Transaction:
        if transaction.is_enriched():
            self.outcome.skipped += 1
            logger.debug(f"Transaction {transaction.id} already enriched, skipping")
            return transaction

        try:
            sample = await self._fetch(transaction)
            self._validate(transaction, sample)
        except EnrichmentNotFoundError as e:
            transaction.mark_enrichment_not_found(e.message)
            self.latest_message = e.message
            await self.repository.save(transaction)
            self.outcome.not_found += 1
            logger.warning(f"Transaction {transaction.id}: {e.message}")
            return transaction
        except EnrichmentFailedError as e:
            transaction.mark_enrichment_failed(e.message)
            self.latest_message = e.message
            await self.repository.save(transaction)
            self.outcome.failed += 1
            logger.warning(f"Transaction {transaction.id}: enrichment failed: {e.message}")
            return transaction

        transaction.apply_enrichment(
            latitude=sample.latitude,
            longitude=sample.longitude,
            odometer=round_odometer(sample.odometer),
        )
        await self.repository.save(transaction)
        self.outcome.completed += 1
        logger.info(
            f"Transaction {transaction.id} enriched: "
            f"{transaction.gps_latitude},{transaction.gps_longitude} odometer={transaction.odometer_gps}"
        )
        return transaction

    async def _fetch(self, transaction: Transaction) -> UnitSample:
        if transaction.mapon_unit_id is None:
            raise EnrichmentFailedError.for_transaction(
                transaction.id,
                f"No telematics unit mapped for vehicle {transaction.vehicle_number}."
            )

        try:
            return await self.client.fetch_sample(
                unit_id=transaction.mapon_unit_id,
                at=format_utc(transaction.transaction_date),
                include=DEFAULT_INCLUDE,
            )
        except TelematicsError as e:
            raise EnrichmentNotFoundError.for_transaction(
                transaction.id, f"API error: {e.message}"
            ) from e

    @staticmethod
    def _validate(transaction: Transaction, sample: UnitSample) -> None:
        if sample.odometer is None:
            raise EnrichmentFailedError.for_transaction(transaction.id, MILEAGE_MISSING)

        if sample.latitude is None or sample.longitude is None:
            raise EnrichmentFailedError.for_transaction(transaction.id, GPS_MISSING)

        if abs(sample.odometer) > MAX_ODOMETER:
            raise EnrichmentFailedError.for_transaction(transaction.id, ODOMETER_OUT_OF_RANGE)

