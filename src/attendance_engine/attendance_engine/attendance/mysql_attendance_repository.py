from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import mysql.connector

from ..audit.mysql_audit_repository import to_json
from ..common.datetime_utils import month_bounds
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord, ManualEntry
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, work_date, check_in_time, check_out_time, status, shift_id,
    total_hours, overtime_hours, is_face_verified, face_verification_score,
    check_in_location, check_out_location, is_manual_entry, manual_entry_by, is_locked, note
"""

# Writes are refused when the record's month has been locked for payroll.
_PERIOD_UNLOCKED = """
    NOT EXISTS (
        SELECT 1 FROM payroll_locks pl
        WHERE pl.lock_year = YEAR(%s) AND pl.lock_month = MONTH(%s)
    )
"""

_ROW_PERIOD_UNLOCKED = """
    NOT EXISTS (
        SELECT 1 FROM payroll_locks pl
        WHERE pl.lock_year = YEAR(work_date) AND pl.lock_month = MONTH(work_date)
    )
"""


def _json_column(value: Any) -> Optional[dict]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        status=AttendanceStatus(r["status"]),
        shift_id=r.get("shift_id"),
        total_hours=None if r.get("total_hours") is None else float(r["total_hours"]),
        overtime_hours=float(r.get("overtime_hours") or 0),
        is_face_verified=bool(r.get("is_face_verified")),
        face_verification_score=None
        if r.get("face_verification_score") is None
        else float(r["face_verification_score"]),
        check_in_location=_json_column(r.get("check_in_location")),
        check_out_location=_json_column(r.get("check_out_location")),
        is_manual_entry=bool(r.get("is_manual_entry")),
        manual_entry_by=r.get("manual_entry_by"),
        is_locked=bool(r.get("is_locked")),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND work_date=%s
                """,
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_user_month(self, user_id: int, *, year: int, month: int) -> List[AttendanceRecord]:
        first, last = month_bounds(year, month)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date DESC
                """,
                (int(user_id), first, last),
            )
            return [_to_record(r) for r in fetchall(cur)]

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
        values = (int(user_id), work_date, check_in_time, status.value, shift_id, int(bool(face_verified)), face_score, to_json(location))
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    INSERT INTO attendance_records
                        (user_id, work_date, check_in_time, status, shift_id,
                         is_face_verified, face_verification_score, check_in_location)
                    SELECT %s, %s, %s, %s, %s, %s, %s, %s FROM DUAL
                    WHERE {_PERIOD_UNLOCKED}
                    """,
                    values + (work_date, work_date),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError as exc:
            if not is_duplicate_key(exc):
                raise

        # The day already has a record (e.g. ON_LEAVE); claim it only if nobody checked in.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE attendance_records
                SET check_in_time=%s, status=%s, shift_id=%s,
                    is_face_verified=%s, face_verification_score=%s, check_in_location=%s
                WHERE user_id=%s AND work_date=%s
                  AND check_in_time IS NULL AND is_locked=0
                  AND {_PERIOD_UNLOCKED}
                """,
                (check_in_time, status.value, shift_id, int(bool(face_verified)), face_score, to_json(location),
                 int(user_id), work_date, work_date, work_date),
            )
            return cur.rowcount > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE attendance_records
                SET check_out_time=%s, status=%s, total_hours=%s, overtime_hours=%s, check_out_location=%s
                WHERE attendance_id=%s
                  AND check_in_time IS NOT NULL AND check_out_time IS NULL AND is_locked=0
                  AND {_ROW_PERIOD_UNLOCKED}
                """,
                (check_out_time, status.value, total_hours, overtime_hours, to_json(location), int(attendance_id)),
            )
            return cur.rowcount > 0

    def save_manual_entry(self, entry: ManualEntry) -> bool:
        params = (
            entry.check_in_time,
            entry.check_out_time,
            entry.status.value,
            entry.total_hours,
            entry.overtime_hours,
            entry.shift_id,
            int(entry.entered_by),
            entry.note,
        )
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    INSERT INTO attendance_records
                        (user_id, work_date, check_in_time, check_out_time, status, total_hours,
                         overtime_hours, shift_id, is_manual_entry, manual_entry_by, note)
                    SELECT %s, %s, %s, %s, %s, %s, %s, %s, 1, %s, %s FROM DUAL
                    WHERE {_PERIOD_UNLOCKED}
                    """,
                    (int(entry.user_id), entry.work_date) + params + (entry.work_date, entry.work_date),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError as exc:
            if not is_duplicate_key(exc):
                raise

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE attendance_records
                SET check_in_time=%s, check_out_time=%s, status=%s, total_hours=%s,
                    overtime_hours=%s, shift_id=%s, is_manual_entry=1, manual_entry_by=%s, note=%s
                WHERE user_id=%s AND work_date=%s AND is_locked=0
                  AND {_PERIOD_UNLOCKED}
                """,
                params + (int(entry.user_id), entry.work_date, entry.work_date, entry.work_date),
            )
            return cur.rowcount > 0

    def mark_on_leave(self, *, user_id: int, work_date: date, note: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO attendance_records (user_id, work_date, status, note)
                SELECT %s, %s, %s, %s FROM DUAL
                WHERE {_PERIOD_UNLOCKED}
                ON DUPLICATE KEY UPDATE
                    status = IF(check_in_time IS NULL AND is_locked = 0, %s, status),
                    note = IF(check_in_time IS NULL AND is_locked = 0, %s, note)
                """,
                (
                    int(user_id),
                    work_date,
                    AttendanceStatus.ON_LEAVE.value,
                    note,
                    work_date,
                    work_date,
                    AttendanceStatus.ON_LEAVE.value,
                    note,
                ),
            )
            return cur.rowcount > 0
