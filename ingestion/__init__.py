"""
Fuel card CSV import pipeline.

Modules:
    csv_import: TransactionImporter, reads CSV text and persists valid rows
    transformers.fuel_rows: Column mapping, product classification, number
        and date parsing, card masking and currency conversion

Pipeline per data row:

    1. Classify the product (non-fuel rows are skipped)
    2. Map and validate the row (invalid rows are reported as "Row N: ...")
    3. Resolve the vehicle's Mapon unit id (unmapped vehicles import without one)
    4. Persist the transaction as pending with the import batch id

Usage:
    from ingestion.csv_import import TransactionImporter
    from repositories.transactions import TransactionRepository
    from repositories.vehicles import VehicleRepository

Example:
    importer = TransactionImporter(
        TransactionRepository(session),
        VehicleRepository(session)
    )
    result = await importer.import_csv(csv_text)

    print(f"Imported {result.imported} rows in batch {result.batch_id}")

Error Handling:
    CSVImportError aborts the whole import (unreadable CSV, missing header
    columns). RowValidationError only fails its row. StorageError propagates.
"""

__all__ = [
    "TransactionImporter",
    "FuelRowMapper",
]
