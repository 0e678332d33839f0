from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..biometrics.adapter import normalize_descriptors
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Identity
from .repository import IdentityRepository

_COLUMNS = "user_id, full_name, employee_code, shift_id, status, face_descriptor"


def _to_identity(r: Dict[str, Any]) -> Identity:
    return Identity(
        user_id=int(r["user_id"]),
        full_name=r["full_name"],
        employee_code=r.get("employee_code"),
        shift_id=r.get("shift_id"),
        is_active=str(r.get("status") or "ACTIVE").upper() == "ACTIVE",
        descriptors=tuple(normalize_descriptors(r.get("face_descriptor"))),
    )


class MySQLIdentityRepository(IdentityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[Identity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            r = fetchone(cur)
            return _to_identity(r) if r else None

    def list_registered(self) -> Sequence[Identity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM users
                WHERE status='ACTIVE' AND face_descriptor IS NOT NULL
                ORDER BY user_id
                """
            )
            identities = [_to_identity(r) for r in fetchall(cur)]
        return [i for i in identities if i.has_face]
