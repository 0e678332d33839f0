from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..core.enums import AttendanceStatus, DayState


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per (user, work date)."""

    attendance_id: int
    user_id: int
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    shift_id: Optional[int] = None
    total_hours: Optional[float] = None
    overtime_hours: float = 0.0
    is_face_verified: bool = False
    face_verification_score: Optional[float] = None
    check_in_location: Optional[dict] = None
    check_out_location: Optional[dict] = None
    is_manual_entry: bool = False
    manual_entry_by: Optional[int] = None
    is_locked: bool = False
    note: Optional[str] = None

    @property
    def day_state(self) -> DayState:
        if self.check_in_time is None:
            return DayState.NOT_MARKED
        if self.check_out_time is None:
            return DayState.CHECKED_IN
        return DayState.CHECKED_OUT

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["work_date"] = self.work_date.isoformat()
        data["check_in_time"] = self.check_in_time.isoformat() if self.check_in_time else None
        data["check_out_time"] = self.check_out_time.isoformat() if self.check_out_time else None
        data["day_state"] = self.day_state.value
        return data


@dataclass(frozen=True)
class Verification:
    face_verified: bool
    face_score: Optional[float]
    location_required: bool
    location_verified: bool
    distance_from_office: Optional[int]


@dataclass(frozen=True)
class CheckInResult:
    user_id: int
    work_date: date
    status: AttendanceStatus
    check_in_time: datetime
    verification: Verification
    full_name: Optional[str] = None
    employee_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "employee_id": self.employee_code,
            "employee_name": self.full_name,
            "work_date": self.work_date.isoformat(),
            "status": self.status.value,
            "check_in_time": self.check_in_time.isoformat(),
            "verification": asdict(self.verification),
        }


@dataclass(frozen=True)
class CheckOutResult:
    user_id: int
    work_date: date
    status: AttendanceStatus
    check_out_time: datetime
    total_hours: float
    overtime_hours: float
    verification: Verification
    full_name: Optional[str] = None
    employee_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "employee_id": self.employee_code,
            "employee_name": self.full_name,
            "work_date": self.work_date.isoformat(),
            "status": self.status.value,
            "check_out_time": self.check_out_time.isoformat(),
            "total_hours": self.total_hours,
            "overtime_hours": self.overtime_hours,
            "verification": asdict(self.verification),
        }


@dataclass(frozen=True)
class TodayStatus:
    work_date: date
    state: DayState
    status: AttendanceStatus
    record: Optional[AttendanceRecord] = None
    shift: Optional[dict] = None
    can_check_in: bool = False
    can_check_out: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "state": self.state.value,
            "status": self.status.value,
            "attendance": self.record.to_dict() if self.record else None,
            "shift": self.shift,
            "can_check_in": self.can_check_in,
            "can_check_out": self.can_check_out,
        }


@dataclass(frozen=True)
class MonthlySummary:
    """One employee's month: records newest first plus day counts and hours."""

    user_id: int
    month: int
    year: int
    records: Sequence[AttendanceRecord]

    def _count(self, status: AttendanceStatus) -> int:
        return sum(1 for r in self.records if r.status == status)

    @property
    def total_hours(self) -> float:
        return round(sum(r.total_hours or 0.0 for r in self.records), 2)

    @property
    def overtime_hours(self) -> float:
        return round(sum(r.overtime_hours or 0.0 for r in self.records), 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "month": self.month,
            "year": self.year,
            "records": [r.to_dict() for r in self.records],
            "summary": {
                "present_days": self._count(AttendanceStatus.PRESENT),
                "absent_days": self._count(AttendanceStatus.ABSENT),
                "late_days": self._count(AttendanceStatus.LATE),
                "half_days": self._count(AttendanceStatus.HALF_DAY),
                "leave_days": self._count(AttendanceStatus.ON_LEAVE),
                "total_hours": self.total_hours,
                "overtime_hours": self.overtime_hours,
            },
        }


@dataclass(frozen=True)
class ManualEntry:
    """Validated input for an HR manual entry."""

    user_id: int
    work_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    total_hours: Optional[float]
    overtime_hours: float
    shift_id: Optional[int]
    entered_by: int
    note: str = ""
