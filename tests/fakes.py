"""In-memory repositories shared by the service and controller tests.

Writes follow the same conditional rules as the MySQL statements: one lock
guards the whole store so each write is atomic, the way a single SQL
statement is.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Optional

from attendance_engine.attendance.model import AttendanceRecord, ManualEntry
from attendance_engine.attendance.service import AttendanceService
from attendance_engine.audit.service import AuditTrail
from attendance_engine.configuration.service import ConfigService
from attendance_engine.core.enums import AttendanceStatus
from attendance_engine.core.exceptions import StoreUnavailableError
from attendance_engine.payroll.service import PayrollLockService
from attendance_engine.shifts.model import Shift
from attendance_engine.users.model import Identity

OFFICE_LAT = 22.14
OFFICE_LON = 78.77

DAY_SHIFT = Shift(
    shift_id=1,
    shift_name="Day",
    start_time=time(9, 0),
    end_time=time(18, 0),
    grace_period_minutes=15,
    half_day_hours=4.0,
    full_day_hours=8.0,
)

NIGHT_SHIFT = Shift(
    shift_id=2,
    shift_name="Night",
    start_time=time(21, 0),
    end_time=time(6, 0),
    grace_period_minutes=15,
    half_day_hours=4.0,
    full_day_hours=8.0,
)


def descriptor(value: float, *, index: Optional[int] = None) -> list[float]:
    """128-length vector filled with ``value`` (or a one-hot at ``index``)."""
    if index is None:
        return [float(value)] * 128
    vec = [0.0] * 128
    vec[index] = float(value)
    return vec


class MutableClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def near_office() -> dict:
    return {"latitude": OFFICE_LAT, "longitude": OFFICE_LON}


def far_from_office() -> dict:
    return {"latitude": OFFICE_LAT + 0.05, "longitude": OFFICE_LON}


@dataclass
class InMemoryIdentities:
    by_id: dict[int, Identity] = field(default_factory=dict)

    def add(self, identity: Identity) -> Identity:
        self.by_id[identity.user_id] = identity
        return identity

    def get_by_id(self, user_id: int) -> Optional[Identity]:
        return self.by_id.get(user_id)

    def list_registered(self):
        return [i for _, i in sorted(self.by_id.items()) if i.is_active and i.has_face]


@dataclass
class InMemoryShifts:
    shift_by_user: dict[int, Shift] = field(default_factory=dict)

    def get_for_user(self, user_id: int) -> Optional[Shift]:
        return self.shift_by_user.get(user_id)


@dataclass
class InMemoryConfig:
    values: dict[str, str] = field(default_factory=dict)
    writes: list[tuple[str, str, int]] = field(default_factory=list)

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def get_all(self):
        return dict(self.values)

    def set(self, key: str, value: str, *, data_type: str, updated_by: int) -> None:
        self.values[key] = value
        self.writes.append((key, value, updated_by))


@dataclass
class InMemoryAudit:
    entries: list[dict] = field(default_factory=list)
    fail: bool = False

    def record(self, **entry) -> None:
        if self.fail:
            raise StoreUnavailableError("audit store down")
        self.entries.append(entry)


class InMemoryStore:
    """Attendance records plus payroll period locks behind one lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_user_date: dict[tuple[int, date], AttendanceRecord] = {}
        self._periods: set[tuple[int, int]] = set()
        self._next_id = 0

    # payroll locks

    def is_locked(self, *, year: int, month: int) -> bool:
        return (year, month) in self._periods

    def lock_period(self, *, year: int, month: int, locked_by: int, locked_at: datetime) -> int:
        with self._lock:
            self._periods.add((year, month))
            count = 0
            for key, rec in list(self._by_user_date.items()):
                if rec.work_date.year == year and rec.work_date.month == month and not rec.is_locked:
                    self._by_user_date[key] = replace(rec, is_locked=True)
                    count += 1
            return count

    # records

    def _writable(self, work_date: date, rec: Optional[AttendanceRecord]) -> bool:
        if (work_date.year, work_date.month) in self._periods:
            return False
        return rec is None or not rec.is_locked

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def all(self) -> list[AttendanceRecord]:
        return list(self._by_user_date.values())

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        return self._by_user_date.get((user_id, work_date))

    def list_for_user_month(self, user_id: int, *, year: int, month: int) -> list[AttendanceRecord]:
        rows = [
            rec
            for (uid, day), rec in self._by_user_date.items()
            if uid == user_id and day.year == year and day.month == month
        ]
        return sorted(rows, key=lambda rec: rec.work_date, reverse=True)

    def create_checkin(self, *, user_id, work_date, check_in_time, status, shift_id, face_verified, face_score, location) -> bool:
        with self._lock:
            existing = self._by_user_date.get((user_id, work_date))
            if not self._writable(work_date, existing):
                return False
            if existing is not None and existing.check_in_time is not None:
                return False
            self._by_user_date[(user_id, work_date)] = AttendanceRecord(
                attendance_id=existing.attendance_id if existing else self._new_id(),
                user_id=user_id,
                work_date=work_date,
                check_in_time=check_in_time,
                check_out_time=None,
                status=status,
                shift_id=shift_id,
                is_face_verified=face_verified,
                face_verification_score=face_score,
                check_in_location=location,
                note=existing.note if existing else None,
            )
            return True

    def complete_checkout(self, *, attendance_id, check_out_time, status, total_hours, overtime_hours, location) -> bool:
        with self._lock:
            for key, rec in self._by_user_date.items():
                if rec.attendance_id != attendance_id:
                    continue
                if rec.check_in_time is None or rec.check_out_time is not None:
                    return False
                if not self._writable(rec.work_date, rec):
                    return False
                self._by_user_date[key] = replace(
                    rec,
                    check_out_time=check_out_time,
                    status=status,
                    total_hours=total_hours,
                    overtime_hours=overtime_hours,
                    check_out_location=location,
                )
                return True
            return False

    def save_manual_entry(self, entry: ManualEntry) -> bool:
        with self._lock:
            existing = self._by_user_date.get((entry.user_id, entry.work_date))
            if not self._writable(entry.work_date, existing):
                return False
            self._by_user_date[(entry.user_id, entry.work_date)] = AttendanceRecord(
                attendance_id=existing.attendance_id if existing else self._new_id(),
                user_id=entry.user_id,
                work_date=entry.work_date,
                check_in_time=entry.check_in_time,
                check_out_time=entry.check_out_time,
                status=entry.status,
                shift_id=entry.shift_id,
                total_hours=entry.total_hours,
                overtime_hours=entry.overtime_hours,
                is_manual_entry=True,
                manual_entry_by=entry.entered_by,
                note=entry.note,
            )
            return True

    def mark_on_leave(self, *, user_id, work_date, note) -> bool:
        with self._lock:
            existing = self._by_user_date.get((user_id, work_date))
            if not self._writable(work_date, existing):
                return False
            if existing is not None and existing.check_in_time is not None:
                return False
            self._by_user_date[(user_id, work_date)] = AttendanceRecord(
                attendance_id=existing.attendance_id if existing else self._new_id(),
                user_id=user_id,
                work_date=work_date,
                check_in_time=None,
                check_out_time=None,
                status=AttendanceStatus.ON_LEAVE,
                note=note,
            )
            return True


@dataclass
class Harness:
    store: InMemoryStore
    identities: InMemoryIdentities
    shifts: InMemoryShifts
    config: InMemoryConfig
    audit: InMemoryAudit
    config_service: ConfigService
    locks: PayrollLockService
    service: AttendanceService
    clock: object


def build_harness(*, location_required: bool = True, clock=None) -> Harness:
    store = InMemoryStore()
    identities = InMemoryIdentities()
    shifts = InMemoryShifts()
    config = InMemoryConfig(
        {
            "face_recognition_threshold": "0.6",
            "location_verification_required": "true" if location_required else "false",
            "office_latitude": str(OFFICE_LAT),
            "office_longitude": str(OFFICE_LON),
            "office_radius_meters": "800",
        }
    )
    audit = InMemoryAudit()
    trail = AuditTrail(audit)
    config_service = ConfigService(config, audit=trail)
    clock = clock or MutableClock(datetime(2026, 3, 2, 9, 0))
    locks = PayrollLockService(store, audit=trail, clock=clock)
    service = AttendanceService(store, identities, shifts, config_service, locks, audit=trail, clock=clock)

    # Two employees on the day shift with distinct faces, one on nights.
    identities.add(Identity(user_id=1, full_name="Asha Rao", employee_code="EMP001", descriptors=(descriptor(0.1),)))
    identities.add(Identity(user_id=2, full_name="Ben Cole", employee_code="EMP002", descriptors=(descriptor(0.9),)))
    identities.add(Identity(user_id=3, full_name="Chen Wu", employee_code="EMP003", descriptors=(descriptor(0.5),)))
    shifts.shift_by_user.update({1: DAY_SHIFT, 2: DAY_SHIFT, 3: NIGHT_SHIFT})

    return Harness(
        store=store,
        identities=identities,
        shifts=shifts,
        config=config,
        audit=audit,
        config_service=config_service,
        locks=locks,
        service=service,
        clock=clock,
    )
