from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import ConfigurationError, InvalidLocationError
from .model import GeofenceResult, LocationCheck, OfficeGeofence


def _coordinate(value: Any, name: str, limit: float) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidLocationError("Location data is required", field=name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidLocationError(f"{name} must be a number", field=name)
    if not math.isfinite(number) or abs(number) > limit:
        raise InvalidLocationError(f"{name} is out of range", field=name, value=value)
    return number


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two lat/lon pairs in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def verify(
    device_lat: Any,
    device_lon: Any,
    office_lat: float,
    office_lon: float,
    radius_meters: float,
) -> GeofenceResult:
    """Check a device position against a circular geofence.

    Distance is rounded to whole meters and the comparison uses the rounded
    value, so the reported distance and the verdict always agree.
    """
    lat = _coordinate(device_lat, "latitude", 90.0)
    lon = _coordinate(device_lon, "longitude", 180.0)
    o_lat = _coordinate(office_lat, "office latitude", 90.0)
    o_lon = _coordinate(office_lon, "office longitude", 180.0)

    distance = int(math.floor(haversine_meters(lat, lon, o_lat, o_lon) + 0.5))
    return GeofenceResult(verified=distance <= radius_meters, distance_meters=distance)


def assess_location(
    location: Optional[Mapping[str, Any]],
    office: Optional[OfficeGeofence],
    *,
    required: bool,
    now: datetime,
) -> LocationCheck:
    """Run the geofence step and build the location payload for the record.

    When verification is not required the distance is still computed (if the
    device sent coordinates) and stored for audit, flagged as not gating.
    """
    if location is not None and not isinstance(location, Mapping):
        raise InvalidLocationError("Location must be an object")
    has_coords = bool(location) and (
        location.get("latitude") is not None or location.get("longitude") is not None
    )
    if not has_coords:
        if required:
            raise InvalidLocationError("Location data is required")
        return LocationCheck(required=False, verified=False, distance_meters=None, payload=None)

    if office is None:
        if required:
            raise ConfigurationError("Office geofence is not configured")
        payload = dict(location)
        payload.update(
            {
                "latitude": _coordinate(location.get("latitude"), "latitude", 90.0),
                "longitude": _coordinate(location.get("longitude"), "longitude", 180.0),
                "verified": False,
                "verification_disabled": True,
                "verified_at": now.isoformat(),
            }
        )
        return LocationCheck(required=False, verified=False, distance_meters=None, payload=payload)

    result = verify(
        location.get("latitude"),
        location.get("longitude"),
        office.latitude,
        office.longitude,
        office.radius_meters,
    )

    payload = dict(location)
    payload.update(
        {
            "latitude": float(location["latitude"]),
            "longitude": float(location["longitude"]),
            "verified": result.verified if required else False,
            "distance_from_office": result.distance_meters,
            "verified_at": now.isoformat(),
        }
    )
    if not required:
        payload["verification_disabled"] = True

    return LocationCheck(
        required=required,
        verified=result.verified,
        distance_meters=result.distance_meters,
        payload=payload,
    )
