from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import (
    DEFAULT_FACE_THRESHOLD,
    DEFAULT_HALF_DAY_HOURS,
    DEFAULT_LATE_THRESHOLD_MINUTES,
    DEFAULT_LOCK_DAY,
    DEFAULT_OVERTIME_THRESHOLD_MINUTES,
)
from ..geofence.model import OfficeGeofence

FACE_RECOGNITION_THRESHOLD = "face_recognition_threshold"
LOCATION_VERIFICATION_REQUIRED = "location_verification_required"
LATE_THRESHOLD_MINUTES = "late_threshold_minutes"
HALF_DAY_THRESHOLD_HOURS = "half_day_threshold_hours"
OVERTIME_THRESHOLD_MINUTES = "overtime_threshold_minutes"
ATTENDANCE_LOCK_DAY = "attendance_lock_day"
OFFICE_LATITUDE = "office_latitude"
OFFICE_LONGITUDE = "office_longitude"
OFFICE_RADIUS_METERS = "office_radius_meters"
OFFICE_NAME = "office_name"


@dataclass(frozen=True)
class AttendanceSettings:
    """Typed snapshot of the attendance config store for one request."""

    face_recognition_threshold: float = DEFAULT_FACE_THRESHOLD
    location_verification_required: bool = True
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES
    half_day_threshold_hours: float = DEFAULT_HALF_DAY_HOURS
    overtime_threshold_minutes: int = DEFAULT_OVERTIME_THRESHOLD_MINUTES
    attendance_lock_day: int = DEFAULT_LOCK_DAY
    office: Optional[OfficeGeofence] = None
