"""
Pydantic schemas for data validation and serialization.

Schemas:
    transaction: TransactionCreate (validated CSV row) and TransactionResponse
    telematics: UnitSample, the Mapon history point DTO
    api: RPC request parameters and result envelopes

Usage:
    from schemas.transaction import TransactionCreate, TransactionResponse
    from schemas.api import ImportResult, EnrichmentOutcome

Example:
    # Validate a row before it is persisted
    row = TransactionCreate(
        vehicle_number="nj-2702",
        transaction_date=datetime(2025, 1, 1, 8, 30),
        product_type="diesel",
        quantity=52.3,
        total_amount=81.07,
        currency="eur",
    )
    assert row.vehicle_number == "NJ-2702"
    assert row.currency == "EUR"
"""

__all__ = [
    "TransactionCreate",
    "TransactionResponse",
    "UnitSample",
    "RPCResponse",
    "ErrorResponse",
    "TransactionListRequest",
    "ImportRequest",
    "EnrichRequest",
    "EnrichAllRequest",
    "TransactionListResult",
    "EnrichmentOutcome",
    "EnrichAllResult",
    "EnrichResult",
    "ImportResult",
    "ClearResult",
    "HealthCheckResponse",
]
