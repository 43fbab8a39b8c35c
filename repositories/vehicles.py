"""
Vehicle registration number -> Mapon unit id lookup
"""

from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from models.vehicle import Vehicle
from core.exceptions import StorageError
import logging

logger = logging.getLogger(__name__)


class VehicleRepository:
    """Read access to the vehicles table, plus seeding for init scripts"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_vehicle_number(self, vehicle_number: str) -> Optional[Vehicle]:
        try:
            result = await self.db.execute(
                select(Vehicle).where(Vehicle.vehicle_number == vehicle_number.strip().upper())
            )
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to look up vehicle",
                context={"operation": "SELECT", "table_name": "vehicles", "vehicle_number": vehicle_number},
                original_exception=e
            )
        return result.scalar_one_or_none()

    async def get_unit_id(self, vehicle_number: str) -> Optional[int]:
        """
        Mapon unit id for a registration number.

        Returns None if the vehicle is unknown or has no Mapon mapping.
        """
        vehicle = await self.get_by_vehicle_number(vehicle_number)
        if vehicle is None or vehicle.mapon_unit_id is None:
            return None
        return int(vehicle.mapon_unit_id)

    async def seed(self, mapping: Dict[str, int]) -> int:
        """Insert vehicles missing from the table. Returns the number inserted."""
        inserted = 0
        for vehicle_number, unit_id in mapping.items():
            if await self.get_by_vehicle_number(vehicle_number) is not None:
                continue
            self.db.add(Vehicle(vehicle_number=vehicle_number.strip().upper(), mapon_unit_id=unit_id))
            inserted += 1

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(
                "Failed to seed vehicles",
                context={"operation": "INSERT", "table_name": "vehicles"},
                original_exception=e
            )

        logger.info(f"Inserted {inserted} vehicles")
        return inserted
