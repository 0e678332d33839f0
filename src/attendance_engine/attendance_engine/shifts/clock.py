"""Shift arithmetic: provisional and final status, worked and overtime hours.

Pure functions only; callers pass the clock readings in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .model import Shift

_DAY = timedelta(hours=24)


@dataclass(frozen=True)
class Classification:
    status: AttendanceStatus
    total_hours: Optional[float] = None
    overtime_hours: Optional[float] = None


def shift_start_for(shift: Shift, check_in: datetime) -> datetime:
    """Start of the shift occurrence that ``check_in`` belongs to.

    For a shift crossing midnight, a check-in in the after-midnight part
    (before the shift end) belongs to the occurrence that started yesterday.
    """
    start = datetime.combine(check_in.date(), shift.start_time, tzinfo=check_in.tzinfo)
    if shift.crosses_midnight and check_in.time() < shift.end_time:
        start -= _DAY
    return start


def provisional_status(shift: Shift, check_in: datetime) -> AttendanceStatus:
    grace = timedelta(minutes=int(shift.grace_period_minutes or 0))
    if check_in > shift_start_for(shift, check_in) + grace:
        return AttendanceStatus.LATE
    return AttendanceStatus.PRESENT


def worked_hours(shift: Shift, check_in: datetime, check_out: datetime) -> float:
    """Raw worked hours; a negative span on a midnight-crossing shift wraps by 24h."""
    span = check_out - check_in
    if span < timedelta(0) and shift.crosses_midnight:
        span += _DAY
    if span <= timedelta(0):
        raise ValidationError(
            "Check-out time must be after check-in time",
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
        )
    return span.total_seconds() / 3600


def classify(
    shift: Shift,
    check_in: datetime,
    check_out: Optional[datetime] = None,
    *,
    overtime_threshold_minutes: int = 0,
) -> Classification:
    status = provisional_status(shift, check_in)
    if check_out is None:
        return Classification(status=status)

    total = worked_hours(shift, check_in, check_out)
    if shift.half_day_hours is not None and total < float(shift.half_day_hours):
        status = AttendanceStatus.HALF_DAY

    overtime = max(0.0, total - float(shift.full_day_hours) - int(overtime_threshold_minutes or 0) / 60)
    return Classification(
        status=status,
        total_hours=round(total, 2),
        overtime_hours=round(overtime, 2),
    )
