from __future__ import annotations

from typing import Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import ConfigRepository


class MySQLConfigRepository(ConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT config_value FROM attendance_config WHERE config_key=%s", (key,))
            r = fetchone(cur)
            return r["config_value"] if r else None

    def get_all(self) -> Mapping[str, str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT config_key, config_value FROM attendance_config")
            return {r["config_key"]: r["config_value"] for r in fetchall(cur)}

    def set(self, key: str, value: str, *, data_type: str, updated_by: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_config (config_key, config_value, data_type, updated_by)
                VALUES (%s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE config_value=VALUES(config_value), updated_by=VALUES(updated_by)
                """,
                (key, value, data_type, int(updated_by)),
            )
