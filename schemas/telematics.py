"""
Mapon unit data DTO
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional
from numbers import Number
import math


class UnitSample(BaseModel):
    """
    One position + mileage reading for a unit. Never stored.

    Every field is independently nullable; the enrichment engine decides
    whether a sample is usable.
    """
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    odometer: Optional[float] = None
    sampled_at: Optional[str] = None

    @classmethod
    def from_api_unit(cls, unit: Dict[str, Any]) -> "UnitSample":
        """
        Map one element of `data.units` from history_point.json.

        Absent or malformed `position` / `mileage` objects yield missing
        fields, not errors.
        """
        position = _as_dict(unit.get("position"))
        coordinates = _as_dict(position.get("value"))
        mileage = _as_dict(unit.get("mileage"))
        sampled_at = position.get("gmt")

        return cls(
            latitude=_as_float(coordinates.get("lat")),
            longitude=_as_float(coordinates.get("lng")),
            odometer=_as_float(mileage.get("value")),
            sampled_at=sampled_at if isinstance(sampled_at, str) else None,
        )


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value) if isinstance(value, Number) else float(str(value))
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
