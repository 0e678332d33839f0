from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, ManualEntry


class AttendanceRepository(Protocol):
    """Record store.

    Every write is a single conditional statement guarded by the
    (user_id, work_date) unique key, the record's lock flag and the payroll
    period lock. A write that loses a race or hits a lock returns False; the
    service re-reads the record to report why.
    """

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_user_month(self, user_id: int, *, year: int, month: int) -> Sequence[AttendanceRecord]:
        """The user's records for one month, newest first."""

        raise NotImplementedError

    def create_checkin(
        self,
        *,
        user_id: int,
        work_date: date,
        check_in_time: datetime,
        status: AttendanceStatus,
        shift_id: Optional[int],
        face_verified: bool,
        face_score: Optional[float],
        location: Optional[dict],
    ) -> bool:
        """Insert the day's record, or fill one that has no check-in yet."""

        raise NotImplementedError

    def complete_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        status: AttendanceStatus,
        total_hours: float,
        overtime_hours: float,
        location: Optional[dict],
    ) -> bool:
        raise NotImplementedError

    def save_manual_entry(self, entry: ManualEntry) -> bool:
        """Create or overwrite the day's record unless it is locked."""

        raise NotImplementedError

    def mark_on_leave(self, *, user_id: int, work_date: date, note: Optional[str]) -> bool:
        """Upsert ON_LEAVE unless locked or already checked in."""

        raise NotImplementedError
