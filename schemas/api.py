"""
Pydantic schemas for RPC request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Generic, TypeVar
from datetime import datetime
from models.base import EnrichmentStatus
from schemas.transaction import TransactionResponse

T = TypeVar("T")

ORDERABLE_FIELDS = ["transaction_date", "created_at", "vehicle_number", "total_amount", "quantity"]


class RPCResponse(BaseModel, Generic[T]):
    """Envelope for every successful RPC call"""
    result: T


class ErrorResponse(BaseModel):
    """Envelope for every failed RPC call"""
    error: str


# ============================================================================
# Request Schemas
# ============================================================================

class TransactionListRequest(BaseModel):
    """Parameters of Transaction__GetList"""
    vehicle_number: Optional[str] = Field(None, description="Filter by vehicle registration number")
    limit: int = Field(default=100, ge=1, le=1000, description="Max results")
    offset: int = Field(default=0, ge=0, description="Pagination offset")
    order_by: Optional[str] = Field(None, description="e.g. 'transaction_date DESC'")

    @validator("vehicle_number")
    def clean_vehicle_number(cls, v):
        if v is None:
            return v
        v = v.strip().upper()
        return v or None

    @validator("order_by")
    def validate_order_by(cls, v):
        if v is None or not v.strip():
            return None
        parts = v.split()
        if parts[0] not in ORDERABLE_FIELDS:
            raise ValueError(f"order_by must be one of: {', '.join(ORDERABLE_FIELDS)}")
        if len(parts) > 2 or (len(parts) == 2 and parts[1].upper() not in ("ASC", "DESC")):
            raise ValueError("order_by direction must be ASC or DESC")
        return " ".join([parts[0]] + [p.upper() for p in parts[1:]])


class ImportRequest(BaseModel):
    """Parameters of Transaction__Import"""
    csv_data: str = Field(..., description="Raw CSV content")

    @validator("csv_data")
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("CSV data cannot be empty")
        return v


class EnrichRequest(BaseModel):
    """Parameters of Transaction__Enrich"""
    id: int = Field(..., gt=0)


class EnrichAllRequest(BaseModel):
    """Parameters of Transaction__EnrichAll"""
    limit: int = Field(..., gt=0, le=1000)
    status: Optional[EnrichmentStatus] = Field(
        None, description="Only enrich transactions in this status (default: newest, any status)"
    )


# ============================================================================
# Result Schemas
# ============================================================================

class TransactionListResult(BaseModel):
    items: List[TransactionResponse]
    total: int
    limit: int
    offset: int


class EnrichmentOutcome(BaseModel):
    """
    Enrichment counters. Field names are part of the RPC contract.
    """
    completed: int = 0
    failed: int = 0
    not_found: int = 0
    skipped: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "completed": self.completed,
            "failed": self.failed,
            "not_found": self.not_found,
            "skipped": self.skipped,
        }


class EnrichAllResult(EnrichmentOutcome):
    message: Optional[str] = Field(None, description="Latest failure message of the run")


class EnrichResult(BaseModel):
    success: bool
    message: Optional[str] = None
    transaction: TransactionResponse


class ImportResult(BaseModel):
    """
    Outcome of one CSV import. Field names are part of the RPC contract.
    """
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
    batch_id: str

    class Config:
        json_schema_extra = {
            "example": {
                "imported": 12,
                "skipped": 2,
                "failed": 1,
                "errors": ["Row 7: missing total amount"],
                "batch_id": "import_20250101083000_1a2b3c4d"
            }
        }


class ClearResult(BaseModel):
    deleted: int


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    transactions_by_status: Dict[str, int] = Field(default_factory=dict)
    telematics_configured: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2025-01-15T10:30:00Z",
                "database_connected": True,
                "transactions_by_status": {"pending": 4, "completed": 10},
                "telematics_configured": True
            }
        }
