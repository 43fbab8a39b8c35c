"""
GPS / odometer enrichment of fuel transactions from the Mapon telematics API.

Modules:
    telematics_client: MaponClient, fetches one history point per unit/time
    engine: EnrichmentEngine, fetch -> validate -> apply -> persist per transaction
    locks: Per-transaction locks so one row is never enriched twice at once
    scheduler: APScheduler job enriching pending transactions periodically

Usage:
    from enrichment.engine import EnrichmentEngine
    from enrichment.telematics_client import MaponClient
    from repositories.transactions import TransactionRepository

Example:
    engine = EnrichmentEngine(MaponClient(), TransactionRepository(session))
    summary = await engine.enrich_batch(transactions)

    print(summary)  # {"completed": 3, "failed": 1, "not_found": 0, "skipped": 2}
"""

__all__ = [
    "MaponClient",
    "EnrichmentEngine",
    "TransactionLocks",
    "EnrichmentScheduler",
]
