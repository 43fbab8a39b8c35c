"""
Pydantic schemas for fuel transactions with validation
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
from models.base import EnrichmentStatus


class TransactionCreate(BaseModel):
    """
    Schema for a validated CSV row about to be persisted.

    Ensures:
    - Required fields are present
    - Types are correct
    - Codes are upper-cased
    """

    # Required
    vehicle_number: str = Field(..., min_length=1, max_length=20)
    transaction_date: datetime
    product_type: str = Field(..., min_length=1, max_length=50)
    quantity: float = Field(..., gt=0)
    total_amount: float
    currency: str = Field(..., min_length=3, max_length=3)

    # Optional purchase data
    card_number: Optional[str] = Field(None, max_length=50)
    station_name: Optional[str] = Field(None, max_length=255)
    station_country: Optional[str] = Field(None, max_length=10)
    unit: str = Field("L", max_length=10)
    unit_price: Optional[float] = None
    original_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    original_amount: Optional[float] = None

    # Resolved at import time
    mapon_unit_id: Optional[int] = None
    import_batch_id: Optional[str] = Field(None, max_length=100)

    @validator("vehicle_number")
    def clean_vehicle_number(cls, v):
        """Registration numbers are compared upper-case without surrounding spaces"""
        v = v.strip().upper()
        if not v:
            raise ValueError("Vehicle number cannot be empty after stripping")
        return v

    @validator("currency", "original_currency")
    def upper_currency(cls, v):
        return v.upper() if v else v


class TransactionResponse(BaseModel):
    """Transaction as returned to the browser client"""
    id: int
    vehicle_number: str
    card_number: Optional[str]
    transaction_date: datetime
    station_name: Optional[str]
    station_country: Optional[str]
    product_type: str
    quantity: float
    unit: str
    unit_price: Optional[float]
    total_amount: float
    currency: str
    original_currency: Optional[str]
    original_amount: Optional[float]
    mapon_unit_id: Optional[int]
    enrichment_status: EnrichmentStatus
    gps_latitude: Optional[float]
    gps_longitude: Optional[float]
    odometer_gps: Optional[int]
    enriched_at: Optional[datetime]
    enrichment_message: Optional[str]
    import_batch_id: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_model(cls, txn):
        """Build from a Transaction ORM row"""
        return cls(
            id=txn.id,
            vehicle_number=txn.vehicle_number,
            card_number=txn.card_number,
            transaction_date=txn.transaction_date,
            station_name=txn.station_name,
            station_country=txn.station_country,
            product_type=txn.product_type,
            quantity=txn.quantity,
            unit=txn.unit or "L",
            unit_price=txn.unit_price,
            total_amount=txn.total_amount,
            currency=txn.currency,
            original_currency=txn.original_currency,
            original_amount=txn.original_amount,
            mapon_unit_id=txn.mapon_unit_id,
            enrichment_status=txn.enrichment_status or EnrichmentStatus.PENDING,
            gps_latitude=txn.gps_latitude,
            gps_longitude=txn.gps_longitude,
            odometer_gps=txn.odometer_gps,
            enriched_at=txn.enriched_at,
            enrichment_message=txn.enrichment_message,
            import_batch_id=txn.import_batch_id,
            created_at=txn.created_at,
        )

    class Config:
        use_enum_values = True
