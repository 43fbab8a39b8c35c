"""
Fuel transaction CSV import
"""

import io
import uuid
import pandas as pd
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from pandas.errors import EmptyDataError, ParserError
from core.config import settings
from core.exceptions import CSVImportError, RowValidationError
from ingestion.transformers.fuel_rows import (
    COLUMNS,
    COL_PRODUCT,
    REQUIRED_COLUMNS,
    FuelRowMapper,
    classify_product,
)
from models.base import EnrichmentStatus
from models.transaction import Transaction
from repositories.transactions import TransactionRepository
from repositories.vehicles import VehicleRepository
from schemas.api import ImportResult
import logging

logger = logging.getLogger(__name__)


# Stands in for the first cell of a row with too many fields
BAD_LINE_MARKER = "\x00bad_line"
# Key of the problem text on a row that could not be split into columns
MALFORMED_ROW = "__malformed__"


def new_batch_id() -> str:
    """import_<UTC yyyymmddHHMMSS>_<8 hex>"""
    return f"import_{datetime.utcnow():%Y%m%d%H%M%S}_{uuid.uuid4().hex[:8]}"


def detect_delimiter(header_line: str) -> str:
    return ";" if header_line.count(";") > header_line.count(",") else ","


def read_rows(csv_data: str) -> List[Dict[str, Any]]:
    """
    Parse CSV text into row dicts keyed by the provider column names.

    Header names are matched case-insensitively and without surrounding
    whitespace. Every value is read as text. A data row with more fields
    than the header keeps its position and comes back as
    {MALFORMED_ROW: "expected N fields, saw M"}.

    Raises:
        CSVImportError: Empty payload, unparsable CSV or missing required columns
    """
    text = csv_data.lstrip("\ufeff").strip()
    if not text:
        raise CSVImportError("CSV data cannot be empty")

    header_line = text.splitlines()[0]
    sep = detect_delimiter(header_line)

    try:
        header = pd.read_csv(io.StringIO(text), sep=sep, dtype=str, nrows=0)
    except (ParserError, EmptyDataError) as e:
        raise CSVImportError(
            f"Could not parse CSV header: {e}",
            context={"delimiter": sep},
            original_exception=e
        )
    width = len(header.columns)

    def flag_bad_line(fields: List[str]) -> List[str]:
        flagged = [BAD_LINE_MARKER, str(len(fields))] + [""] * width
        return flagged[:max(width, 1)]

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            index_col=False,
            on_bad_lines=flag_bad_line,
        )
    except (ParserError, EmptyDataError) as e:
        raise CSVImportError(
            f"Could not parse CSV: {e}",
            context={"delimiter": sep},
            original_exception=e
        )

    # Map header variants back onto the canonical provider names
    canonical = {name.lower(): name for name in COLUMNS}
    df.columns = [canonical.get(str(c).strip().lower(), str(c).strip()) for c in df.columns]

    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise CSVImportError(
            f"CSV header is missing required columns: {', '.join(missing)}",
            context={"missing_columns": missing}
        )

    rows = []
    first, second = df.columns[0], df.columns[1]
    for record in df.to_dict(orient="records"):
        if record[first] == BAD_LINE_MARKER:
            record = {MALFORMED_ROW: f"expected {width} fields, saw {record[second]}"}
        rows.append(record)
    return rows


class TransactionImporter:
    """
    Import fuel card CSV exports into the transactions table.

    Each valid row is committed on its own with status pending. Invalid rows
    are reported as "Row N: <problem>" and never stop the import. Storage
    errors propagate.
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        vehicles: VehicleRepository,
        mapper: Optional[FuelRowMapper] = None
    ):
        self.transactions = transactions
        self.vehicles = vehicles
        self.mapper = mapper or FuelRowMapper(
            base_currency=settings.BASE_CURRENCY,
            exchange_rates=settings.EXCHANGE_RATES,
            default_unit=settings.DEFAULT_UNIT,
        )
        self._unit_ids: Dict[str, Optional[int]] = {}

    async def import_csv(self, csv_data: str) -> ImportResult:
        rows = read_rows(csv_data)
        result = ImportResult(batch_id=new_batch_id())
        logger.info(f"Importing {len(rows)} rows as batch {result.batch_id}")

        # Header is row 1
        for row_number, row in enumerate(rows, start=2):
            if MALFORMED_ROW in row:
                self._fail(result, RowValidationError(row[MALFORMED_ROW], row_number))
                continue

            product = FuelRowMapper.cell(row, COL_PRODUCT)
            if product:
                product_type = classify_product(product)
                if product_type is None:
                    result.skipped += 1
                    logger.debug(f"Row {row_number}: skipping non-fuel product '{product}'")
                    continue
            else:
                product_type = ""

            try:
                create = self.mapper.map_row(row, row_number, product_type, result.batch_id)
            except RowValidationError as e:
                self._fail(result, e)
                continue

            create.mapon_unit_id = await self._unit_id(create.vehicle_number)
            transaction = Transaction(
                **create.model_dump(),
                enrichment_status=EnrichmentStatus.PENDING
            )
            await self.transactions.add(transaction)
            result.imported += 1

        logger.info(
            f"Batch {result.batch_id}: imported={result.imported}, "
            f"skipped={result.skipped}, failed={result.failed}"
        )
        return result

    async def import_file(self, file_path: str) -> ImportResult:
        path = Path(file_path)
        if not path.exists():
            raise CSVImportError(f"CSV file not found: {path}", context={"file_path": str(path)})
        return await self.import_csv(path.read_text(encoding="utf-8-sig"))

    @staticmethod
    def _fail(result: ImportResult, error: RowValidationError) -> None:
        result.failed += 1
        result.errors.append(error.row_message())
        logger.warning(error.row_message())

    async def _unit_id(self, vehicle_number: str) -> Optional[int]:
        if vehicle_number not in self._unit_ids:
            unit_id = await self.vehicles.get_unit_id(vehicle_number)
            if unit_id is None:
                logger.info(f"Vehicle {vehicle_number} has no Mapon unit, importing without one")
            self._unit_ids[vehicle_number] = unit_id
        return self._unit_ids[vehicle_number]
