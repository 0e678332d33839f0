from __future__ import annotations

import logging
import math
from typing import Callable, Mapping, Optional, TypeVar

from ..audit.service import AuditTrail
from ..core.constants import DEFAULT_OFFICE_RADIUS_METERS
from ..core.enums import AuditAction, Role
from ..core.exceptions import AuthorizationError, ConfigurationError
from ..geofence.model import OfficeGeofence
from . import model as keys
from .model import AttendanceSettings
from .repository import ConfigRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def parse_float(value: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


def parse_int(value: str) -> int:
    return int(float(value))


class ConfigService:
    """Typed view over the attendance config store.

    Every value is read at request time; one ``load()`` is one round trip.
    Office coordinates have no default and exist only in the store.
    """

    def __init__(self, config: ConfigRepository, audit: Optional[AuditTrail] = None):
        self._config = config
        self._audit = audit

    @staticmethod
    def _typed(raw: Mapping[str, str], key: str, parse: Callable[[str], T], default: T) -> T:
        value = raw.get(key)
        if value is None or str(value).strip() == "":
            return default
        try:
            return parse(str(value))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid value for {key}", key=key, value=value) from exc

    def load(self) -> AttendanceSettings:
        raw = self._config.get_all()
        defaults = AttendanceSettings()
        settings = AttendanceSettings(
            face_recognition_threshold=self._typed(
                raw, keys.FACE_RECOGNITION_THRESHOLD, parse_float, defaults.face_recognition_threshold
            ),
            location_verification_required=self._typed(
                raw, keys.LOCATION_VERIFICATION_REQUIRED, parse_bool, defaults.location_verification_required
            ),
            late_threshold_minutes=self._typed(
                raw, keys.LATE_THRESHOLD_MINUTES, parse_int, defaults.late_threshold_minutes
            ),
            half_day_threshold_hours=self._typed(
                raw, keys.HALF_DAY_THRESHOLD_HOURS, parse_float, defaults.half_day_threshold_hours
            ),
            overtime_threshold_minutes=self._typed(
                raw, keys.OVERTIME_THRESHOLD_MINUTES, parse_int, defaults.overtime_threshold_minutes
            ),
            attendance_lock_day=self._typed(raw, keys.ATTENDANCE_LOCK_DAY, parse_int, defaults.attendance_lock_day),
            office=self._office(raw),
        )
        if settings.face_recognition_threshold <= 0:
            raise ConfigurationError(
                "face_recognition_threshold must be positive",
                value=settings.face_recognition_threshold,
            )
        if not 1 <= settings.attendance_lock_day <= 28:
            raise ConfigurationError("attendance_lock_day must be between 1 and 28", value=settings.attendance_lock_day)
        return settings

    def _office(self, raw: Mapping[str, str]) -> Optional[OfficeGeofence]:
        lat = self._typed(raw, keys.OFFICE_LATITUDE, parse_float, None)
        lon = self._typed(raw, keys.OFFICE_LONGITUDE, parse_float, None)
        if lat is None and lon is None:
            return None
        if lat is None or lon is None:
            raise ConfigurationError("Office geofence needs both office_latitude and office_longitude")
        if abs(lat) > 90 or abs(lon) > 180:
            raise ConfigurationError("Office coordinates are out of range", latitude=lat, longitude=lon)
        radius = self._typed(raw, keys.OFFICE_RADIUS_METERS, parse_int, DEFAULT_OFFICE_RADIUS_METERS)
        if radius <= 0:
            raise ConfigurationError("office_radius_meters must be positive", value=radius)
        return OfficeGeofence(latitude=lat, longitude=lon, radius_meters=radius, name=raw.get(keys.OFFICE_NAME))

    def office_location(self) -> dict:
        settings = self.load()
        data = settings.office.to_dict() if settings.office else {}
        data["location_verification_required"] = settings.location_verification_required
        return data

    def set_location_verification(self, *, actor_id: int, actor_role: Role, enabled: bool) -> bool:
        if actor_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can change this setting")
        previous = self.load().location_verification_required
        self._config.set(
            keys.LOCATION_VERIFICATION_REQUIRED,
            "true" if enabled else "false",
            data_type="boolean",
            updated_by=actor_id,
        )
        logger.info("Location verification %s by user %s", "enabled" if enabled else "disabled", actor_id)
        if self._audit:
            self._audit.record(
                actor_id=actor_id,
                action=AuditAction.UPDATE,
                entity_type="system_config",
                before={keys.LOCATION_VERIFICATION_REQUIRED: previous},
                after={keys.LOCATION_VERIFICATION_REQUIRED: enabled},
                reason=f"Location verification {'enabled' if enabled else 'disabled'} by admin",
            )
        return enabled
