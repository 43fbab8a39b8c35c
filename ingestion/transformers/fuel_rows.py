"""
Map fuel card provider CSV rows onto validated TransactionCreate models
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import ValidationError
from schemas.transaction import TransactionCreate
from core.exceptions import RowValidationError
import math
import re
import logging

logger = logging.getLogger(__name__)

# Provider column layout
COL_DATE = "Date"
COL_TIME = "Time"
COL_CARD = "Card Nr."
COL_VEHICLE = "Vehicle Nr."
COL_PRODUCT = "Product"
COL_AMOUNT = "Amount"
COL_TOTAL = "Total sum"
COL_CURRENCY = "Currency"
COL_COUNTRY = "Country"
COL_COUNTRY_ISO = "Country ISO"
COL_STATION = "Fuel station"

COLUMNS = [
    COL_DATE, COL_TIME, COL_CARD, COL_VEHICLE, COL_PRODUCT, COL_AMOUNT,
    COL_TOTAL, COL_CURRENCY, COL_COUNTRY, COL_COUNTRY_ISO, COL_STATION,
]
REQUIRED_COLUMNS = [COL_DATE, COL_VEHICLE, COL_PRODUCT, COL_AMOUNT, COL_TOTAL]

DATE_FORMATS = ["%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y"]
TIME_FORMATS = ["%H:%M:%S", "%H:%M"]

# Checked before the fuel patterns: "Super wash" is not petrol
NON_FUEL_PATTERN = re.compile(
    r"wash|\bfees?\b|\btoll|vignette|parking|\bshop\b|coffee|food|lubric|motor ?oil|engine ?oil",
    re.IGNORECASE,
)

# Order matters: "HVO diesel" is hvo, "AdBlue" is never diesel
FUEL_PRODUCTS = [
    (re.compile(r"ad ?blue|\burea\b", re.IGNORECASE), "adblue"),
    (re.compile(r"\bhvo", re.IGNORECASE), "hvo"),
    (re.compile(r"\blpg\b|autogas", re.IGNORECASE), "lpg"),
    (re.compile(r"\bcng\b|\blng\b|natural gas", re.IGNORECASE), "cng"),
    (re.compile(r"electric|charging|\bkwh\b", re.IGNORECASE), "electricity"),
    (re.compile(r"diesel|gasoil|\bdsl\b", re.IGNORECASE), "diesel"),
    (re.compile(r"petrol|gasoline|benzin|unleaded|\bsuper\b|\bron\b|\b9[58]\b|\be5\b|\be10\b", re.IGNORECASE), "petrol"),
]

PRODUCT_UNITS = {"electricity": "kWh"}


def classify_product(product: str) -> Optional[str]:
    """
    Fuel product type for a provider product name.

    Returns None for anything that is not a fuel purchase (wash, fees, shop).
    """
    if NON_FUEL_PATTERN.search(product):
        return None
    for pattern, product_type in FUEL_PRODUCTS:
        if pattern.search(product):
            return product_type
    return None


def parse_number(value: str) -> float:
    """
    Parse a provider number.

    Handles:
    - "52.30" / "52,30"
    - "1 234,56" / "1.234,56" / "1,234.56"
    - currency symbols
    """
    text = re.sub(r"[\s $€£]", "", value)
    if not text:
        raise ValueError("empty number")

    if "," in text and "." in text:
        # Whichever separator comes last is the decimal one
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") == 1:
        text = text.replace(",", ".")
    elif text.count(",") > 1:
        text = text.replace(",", "")

    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value}")
    return number


def parse_timestamp(date_value: str, time_value: str = "") -> datetime:
    """Combine the Date and Time columns into one naive UTC timestamp"""
    parsed_date = None
    for fmt in DATE_FORMATS:
        try:
            parsed_date = datetime.strptime(date_value.strip(), fmt)
            break
        except ValueError:
            continue
    if parsed_date is None:
        raise ValueError(f"unrecognised date '{date_value}'")

    time_value = time_value.strip()
    if not time_value:
        return parsed_date

    for fmt in TIME_FORMATS:
        try:
            parsed_time = datetime.strptime(time_value, fmt).time()
            return datetime.combine(parsed_date.date(), parsed_time)
        except ValueError:
            continue
    raise ValueError(f"unrecognised time '{time_value}'")


def mask_card_number(card_number: str) -> Optional[str]:
    """Replace every digit except the last four with '*'"""
    card_number = card_number.strip()
    if not card_number:
        return None

    digits_seen = 0
    total_digits = sum(ch.isdigit() for ch in card_number)
    masked = []
    for ch in card_number:
        if ch.isdigit():
            digits_seen += 1
            masked.append(ch if digits_seen > total_digits - 4 else "*")
        else:
            masked.append(ch)
    return "".join(masked)


class FuelRowMapper:
    """
    Map one CSV row into a TransactionCreate.

    Handles:
    - Schema mapping from the provider column names
    - Type conversion (numbers, Date + Time)
    - Currency conversion into the base currency
    - Card number masking
    """

    def __init__(
        self,
        base_currency: str = "EUR",
        exchange_rates: Optional[Dict[str, float]] = None,
        default_unit: str = "L"
    ):
        self.base_currency = base_currency.upper()
        self.exchange_rates = {k.upper(): v for k, v in (exchange_rates or {}).items()}
        self.default_unit = default_unit

    @staticmethod
    def cell(row: Dict[str, Any], column: str) -> str:
        """Stripped cell text; missing or NaN cells are empty strings"""
        value = row.get(column)
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return ""
        return str(value).strip()

    def map_row(
        self,
        row: Dict[str, Any],
        row_number: int,
        product_type: str,
        batch_id: Optional[str] = None
    ) -> TransactionCreate:
        """
        Build a validated TransactionCreate from a fuel row.

        Raises:
            RowValidationError: Missing required field or unparsable value
        """
        missing = self._missing_required(row)
        if missing:
            raise RowValidationError(f"missing {', '.join(missing)}", row_number)

        try:
            transaction_date = parse_timestamp(self.cell(row, COL_DATE), self.cell(row, COL_TIME))
        except ValueError as e:
            raise RowValidationError(f"invalid transaction date: {e}", row_number, COL_DATE, e)

        quantity = self._number(row, COL_AMOUNT, "quantity", row_number)
        total_amount = self._number(row, COL_TOTAL, "total amount", row_number)

        currency = (self.cell(row, COL_CURRENCY) or self.base_currency).upper()
        original_currency = None
        original_amount = None
        if currency != self.base_currency and currency in self.exchange_rates:
            original_currency = currency
            original_amount = total_amount
            total_amount = round(total_amount * self.exchange_rates[currency], 2)
            currency = self.base_currency

        unit_price = round(total_amount / quantity, 4) if quantity else None

        try:
            return TransactionCreate(
                vehicle_number=self.cell(row, COL_VEHICLE),
                card_number=mask_card_number(self.cell(row, COL_CARD)),
                transaction_date=transaction_date,
                station_name=self.cell(row, COL_STATION) or None,
                station_country=self._country(row),
                product_type=product_type,
                quantity=quantity,
                unit=PRODUCT_UNITS.get(product_type, self.default_unit),
                unit_price=unit_price,
                total_amount=total_amount,
                currency=currency,
                original_currency=original_currency,
                original_amount=original_amount,
                import_batch_id=batch_id,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            raise RowValidationError(f"invalid {field}: {first['msg']}", row_number, field, e)

    def _missing_required(self, row: Dict[str, Any]) -> List[str]:
        labels = [
            (COL_VEHICLE, "vehicle number"),
            (COL_PRODUCT, "product type"),
            (COL_AMOUNT, "quantity"),
            (COL_TOTAL, "total amount"),
            (COL_DATE, "transaction date"),
        ]
        return [label for column, label in labels if not self.cell(row, column)]

    def _number(self, row: Dict[str, Any], column: str, label: str, row_number: int) -> float:
        raw = self.cell(row, column)
        try:
            return parse_number(raw)
        except ValueError as e:
            raise RowValidationError(f"invalid {label} '{raw}'", row_number, column, e)

    def _country(self, row: Dict[str, Any]) -> Optional[str]:
        iso = self.cell(row, COL_COUNTRY_ISO)
        if iso:
            return iso.upper()[:10]
        return self.cell(row, COL_COUNTRY)[:10] or None
