from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.constants import DEFAULT_FULL_DAY_HOURS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time
from .model import Shift
from .repository import ShiftRepository

_COLUMNS = """
    s.shift_id, s.shift_name, s.code, s.start_time, s.end_time,
    s.grace_period_minutes, s.half_day_hours, s.full_day_hours
"""


def _to_shift(r: Dict[str, Any]) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        shift_name=r["shift_name"],
        code=r.get("code"),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        grace_period_minutes=None if r.get("grace_period_minutes") is None else int(r["grace_period_minutes"]),
        half_day_hours=None if r.get("half_day_hours") is None else float(r["half_day_hours"]),
        full_day_hours=float(r["full_day_hours"]) if r.get("full_day_hours") is not None else DEFAULT_FULL_DAY_HOURS,
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user(self, user_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM users u
                JOIN shifts s ON s.shift_id = u.shift_id
                WHERE u.user_id=%s AND s.is_active=1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_shift(r) if r else None
