"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and the EnrichmentStatus enum
    transaction: Fuel transactions imported from card provider CSVs
    vehicle: Vehicle registration number -> Mapon unit id mapping

Usage:
    from models.transaction import Transaction
    from models.vehicle import Vehicle
    from models.base import EnrichmentStatus

Example:
    # Create a pending transaction
    txn = Transaction(
        vehicle_number="NJ-2702",
        transaction_date=datetime(2025, 1, 1, 8, 30),
        product_type="diesel",
        quantity=52.3,
        total_amount=81.07,
        currency="EUR",
    )
    session.add(txn)
    await session.commit()
"""

__all__ = [
    "Base",
    "EnrichmentStatus",
    "Transaction",
    "Vehicle",
]
