"""
Async repository for fuel transactions.

Every write commits on its own; there is no transaction spanning several
records. SQLAlchemy failures are rolled back and re-raised as StorageError.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete
from sqlalchemy.exc import SQLAlchemyError
from models.transaction import Transaction
from models.base import EnrichmentStatus
from core.exceptions import StorageError
import logging

logger = logging.getLogger(__name__)

DEFAULT_ORDER = "transaction_date DESC"

_ORDER_COLUMNS = {
    "transaction_date": Transaction.transaction_date,
    "created_at": Transaction.created_at,
    "vehicle_number": Transaction.vehicle_number,
    "total_amount": Transaction.total_amount,
    "quantity": Transaction.quantity,
}


def _order_clause(order_by: Optional[str]):
    """Translate 'column [ASC|DESC]' into a SQLAlchemy order clause"""
    parts = (order_by or DEFAULT_ORDER).split()
    column = _ORDER_COLUMNS.get(parts[0])
    if column is None:
        raise ValueError(f"Cannot order transactions by '{parts[0]}'")

    direction = parts[1].upper() if len(parts) > 1 else "ASC"
    if direction not in ("ASC", "DESC"):
        raise ValueError(f"Invalid order direction '{parts[1]}'")

    return column.desc() if direction == "DESC" else column.asc()


class TransactionRepository:
    """
    Store for Transaction rows.

    Used by:
    - the CSV import pipeline (add)
    - the enrichment engine (save, reload)
    - the RPC layer (get, get_all, count, delete_all)
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def _commit(self, operation: str, context: Optional[Dict] = None):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(
                "Failed to write transaction",
                context={"operation": operation, "table_name": "transactions", **(context or {})},
                original_exception=e
            )

    async def add(self, transaction: Transaction) -> Transaction:
        """Insert a new transaction and return it with its id"""
        self.db.add(transaction)
        await self._commit("INSERT", {"vehicle_number": transaction.vehicle_number})
        return transaction

    async def save(self, transaction: Transaction) -> Transaction:
        """Persist every mutated field of the transaction"""
        self.db.add(transaction)
        await self._commit("UPDATE", {"transaction_id": transaction.id})
        return transaction

    async def reload(self, transaction: Transaction) -> Transaction:
        """Re-read a persisted transaction so concurrent writes become visible"""
        if transaction.id is None:
            return transaction
        try:
            await self.db.refresh(transaction)
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to reload transaction",
                context={"operation": "SELECT", "table_name": "transactions", "transaction_id": transaction.id},
                original_exception=e
            )
        return transaction

    async def _fetch(self, query) -> List[Transaction]:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to query transactions",
                context={"operation": "SELECT", "table_name": "transactions"},
                original_exception=e
            )
        return list(result.scalars().all())

    async def get(self, transaction_id: int) -> Optional[Transaction]:
        rows = await self._fetch(select(Transaction).where(Transaction.id == transaction_id))
        return rows[0] if rows else None

    async def get_all(
        self,
        vehicle_number: Optional[str] = None,
        order_by: Optional[str] = DEFAULT_ORDER,
        limit: Optional[int] = 100,
        offset: int = 0
    ) -> List[Transaction]:
        """Transactions, optionally for one vehicle, newest first by default"""
        query = select(Transaction)
        if vehicle_number:
            query = query.where(Transaction.vehicle_number == vehicle_number)

        query = query.order_by(_order_clause(order_by), Transaction.id.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        return await self._fetch(query)

    async def get_by_status(
        self,
        status: EnrichmentStatus = EnrichmentStatus.PENDING,
        limit: int = 100
    ) -> List[Transaction]:
        """Transactions in the given enrichment status, oldest first"""
        query = (
            select(Transaction)
            .where(Transaction.enrichment_status == status)
            .order_by(Transaction.created_at.asc(), Transaction.id.asc())
            .limit(limit)
        )
        return await self._fetch(query)

    async def get_by_batch_id(self, batch_id: str) -> List[Transaction]:
        query = (
            select(Transaction)
            .where(Transaction.import_batch_id == batch_id)
            .order_by(Transaction.id.asc())
        )
        return await self._fetch(query)

    async def count(self, vehicle_number: Optional[str] = None) -> int:
        query = select(func.count()).select_from(Transaction)
        if vehicle_number:
            query = query.where(Transaction.vehicle_number == vehicle_number)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to count transactions",
                context={"operation": "SELECT", "table_name": "transactions"},
                original_exception=e
            )
        return result.scalar() or 0

    async def count_by_status(self) -> Dict[str, int]:
        query = (
            select(Transaction.enrichment_status, func.count())
            .group_by(Transaction.enrichment_status)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to count transactions by status",
                context={"operation": "SELECT", "table_name": "transactions"},
                original_exception=e
            )
        return {
            (status.value if isinstance(status, EnrichmentStatus) else str(status)): count
            for status, count in result.all()
        }

    async def delete_all(self) -> int:
        """Remove every transaction. Returns the number deleted."""
        deleted = await self.count()
        try:
            await self.db.execute(delete(Transaction))
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(
                "Failed to clear transactions",
                context={"operation": "DELETE", "table_name": "transactions"},
                original_exception=e
            )
        await self._commit("DELETE")

        logger.info(f"Deleted {deleted} transactions")
        return deleted
