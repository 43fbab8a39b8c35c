"""
Async SQLAlchemy repositories.

Modules:
    transactions: TransactionRepository (save, get, get_all, get_by_status, ...)
    vehicles: VehicleRepository (vehicle number -> Mapon unit id lookup)
"""

__all__ = [
    "TransactionRepository",
    "VehicleRepository",
]
