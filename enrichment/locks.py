"""
Per-transaction enrichment locks.

Keeps at most one enrichment in flight per transaction id inside this
process, so two concurrent requests cannot both apply GPS data to the same
row.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Optional


class TransactionLocks:
    """Registry of asyncio locks keyed by transaction id"""

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._waiters: Dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, transaction_id: Optional[int]):
        """Hold the lock for one transaction. Unsaved transactions need no lock."""
        if transaction_id is None:
            yield
            return

        lock = self._locks.setdefault(transaction_id, asyncio.Lock())
        self._waiters[transaction_id] = self._waiters.get(transaction_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[transaction_id] -= 1
            if self._waiters[transaction_id] == 0:
                del self._waiters[transaction_id]
                del self._locks[transaction_id]

    def in_use(self) -> int:
        return len(self._locks)


# Shared by every engine in the process
transaction_locks = TransactionLocks()
