from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from models.base import Base


class Vehicle(Base):
    """
    Maps a vehicle registration number to its Mapon unit id.

    Read-only for the import pipeline; rows are seeded by scripts/init_db.py.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_number = Column(String(20), nullable=False, unique=True, index=True)
    mapon_unit_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
