"""Legal transitions of a day's record: NOT_MARKED -> CHECKED_IN -> CHECKED_OUT.

Guards only; they raise the matching domain error and never touch storage.
The order of the checks is the order in which errors are reported.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from ..biometrics.model import MatchResult, NoMatch
from ..core.enums import DayState
from ..core.exceptions import (
    AlreadyCheckedInError,
    AlreadyCheckedOutError,
    FaceNotVerifiedError,
    LocationDeniedError,
    LockedRecordError,
    NoActiveCheckInError,
)
from ..geofence.model import LocationCheck, OfficeGeofence
from .model import AttendanceRecord


def day_state(record: Optional[AttendanceRecord]) -> DayState:
    return record.day_state if record else DayState.NOT_MARKED


def ensure_face_verified(face_verified: bool, match: Optional[MatchResult] = None) -> None:
    if isinstance(match, NoMatch):
        raise FaceNotVerifiedError(best_distance=match.best_distance, threshold=match.threshold)
    if not face_verified:
        raise FaceNotVerifiedError("Face verification is required to mark attendance")


def ensure_location_allowed(location: LocationCheck, office: Optional[OfficeGeofence]) -> None:
    if location.gating_passed:
        return
    raise LocationDeniedError(
        distance_meters=int(location.distance_meters or 0),
        radius_meters=int(office.radius_meters if office else 0),
    )


def ensure_unlocked(record: Optional[AttendanceRecord], *, work_date: date, period_locked: bool, user_id: int) -> None:
    if period_locked or (record is not None and record.is_locked):
        raise LockedRecordError(work_date, user_id=user_id)


def ensure_can_check_in(
    record: Optional[AttendanceRecord],
    *,
    user_id: int,
    work_date: date,
    period_locked: bool,
) -> None:
    ensure_unlocked(record, work_date=work_date, period_locked=period_locked, user_id=user_id)
    if day_state(record) != DayState.NOT_MARKED:
        raise AlreadyCheckedInError(user_id, work_date)


def ensure_can_check_out(
    record: Optional[AttendanceRecord],
    *,
    user_id: int,
    work_date: date,
    period_locked: bool,
) -> AttendanceRecord:
    state = day_state(record)
    if state == DayState.NOT_MARKED:
        raise NoActiveCheckInError(user_id, work_date)
    if state == DayState.CHECKED_OUT:
        raise AlreadyCheckedOutError(user_id, work_date)
    ensure_unlocked(record, work_date=record.work_date, period_locked=period_locked, user_id=user_id)
    return record
