from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class OfficeGeofence:
    """Circular boundary around the office (single configuration record)."""

    latitude: float
    longitude: float
    radius_meters: int
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius": self.radius_meters,
            "name": self.name,
        }


@dataclass(frozen=True)
class GeofenceResult:
    verified: bool
    distance_meters: int


@dataclass(frozen=True)
class LocationCheck:
    """Outcome of the location step for one check-in/check-out request.

    ``payload`` is what gets persisted on the record (None when the device
    sent no location and verification is not required).
    """

    required: bool
    verified: bool
    distance_meters: Optional[int]
    payload: Optional[dict]

    @property
    def gating_passed(self) -> bool:
        return self.verified or not self.required
