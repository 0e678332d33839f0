from __future__ import annotations

from datetime import datetime

from ..common.datetime_utils import month_bounds
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import PayrollLockRepository


class MySQLPayrollLockRepository(PayrollLockRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_locked(self, *, year: int, month: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS locked FROM payroll_locks WHERE lock_year=%s AND lock_month=%s",
                (int(year), int(month)),
            )
            return fetchone(cur) is not None

    def lock_period(self, *, year: int, month: int, locked_by: int, locked_at: datetime) -> int:
        first, last = month_bounds(int(year), int(month))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO payroll_locks (lock_year, lock_month, locked_by, locked_at)
                VALUES (%s, %s, %s, %s)
                """,
                (int(year), int(month), int(locked_by), locked_at),
            )
            cur.execute(
                """
                UPDATE attendance_records
                SET is_locked=1, locked_at=%s, locked_by=%s
                WHERE work_date BETWEEN %s AND %s AND is_locked=0
                """,
                (locked_at, int(locked_by), first, last),
            )
            return int(cur.rowcount)
