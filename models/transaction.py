from sqlalchemy import Column, Integer, String, Enum, DateTime, Float, Text, Index
from datetime import datetime
from typing import Optional
from models.base import Base, EnrichmentStatus


class Transaction(Base):
    """
    Fuel purchase imported from a card provider CSV.

    Lifecycle:
    - Created by the CSV import pipeline with status `pending`
    - Mutated only by the enrichment engine afterwards
    - Removed only by the bulk clear operation

    Invariant:
    - status `completed` <=> gps_latitude, gps_longitude, odometer_gps
      and enriched_at are all set
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Purchase data (from CSV)
    vehicle_number = Column(String(20), nullable=False, index=True)
    card_number = Column(String(50), nullable=True)
    transaction_date = Column(DateTime, nullable=False, index=True)
    station_name = Column(String(255), nullable=True)
    station_country = Column(String(10), nullable=True)
    product_type = Column(String(50), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String(10), nullable=False, default="L")
    unit_price = Column(Float, nullable=True)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    original_currency = Column(String(3), nullable=True)
    original_amount = Column(Float, nullable=True)

    # Mapon integration
    mapon_unit_id = Column(Integer, nullable=True)

    # Enrichment fields (from Mapon API)
    enrichment_status = Column(
        Enum(
            EnrichmentStatus,
            name="enrichment_status",
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=EnrichmentStatus.PENDING,
        index=True,
    )
    gps_latitude = Column(Float, nullable=True)
    gps_longitude = Column(Float, nullable=True)
    odometer_gps = Column(Integer, nullable=True)
    enriched_at = Column(DateTime, nullable=True)
    enrichment_message = Column(Text, nullable=True)

    # Metadata
    import_batch_id = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_transactions_status_created", "enrichment_status", "created_at"),
    )

    def is_enriched(self) -> bool:
        """Check if this transaction has been enriched with GPS data."""
        return self.enrichment_status == EnrichmentStatus.COMPLETED

    def mark_enrichment_not_found(self, reason: Optional[str] = None) -> None:
        self.enrichment_status = EnrichmentStatus.NOT_FOUND
        self.enrichment_message = reason

    def mark_enrichment_failed(self, reason: Optional[str] = None) -> None:
        self.enrichment_status = EnrichmentStatus.FAILED
        self.enrichment_message = reason

    def apply_enrichment(self, latitude: float, longitude: float, odometer: int) -> None:
        """Apply GPS position and odometer reading from Mapon."""
        self.gps_latitude = latitude
        self.gps_longitude = longitude
        self.odometer_gps = odometer
        self.enrichment_status = EnrichmentStatus.COMPLETED
        self.enrichment_message = None
        self.enriched_at = datetime.utcnow()

    def __repr__(self) -> str:
        return (
            f"<Transaction id={self.id} vehicle={self.vehicle_number} "
            f"status={self.enrichment_status}>"
        )
