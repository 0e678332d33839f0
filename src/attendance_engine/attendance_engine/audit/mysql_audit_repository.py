from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from ..core.enums import AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .repository import AuditSink


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Not JSON serializable: {type(value)!r}")


def to_json(values: Optional[Mapping[str, Any]]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps(dict(values), default=_json_default)


class MySQLAuditRepository(AuditSink):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(
        self,
        *,
        actor_id: Optional[int],
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[Any],
        before: Optional[Mapping[str, Any]],
        after: Optional[Mapping[str, Any]],
        reason: Optional[str] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs (actor_id, action, entity_type, entity_id, old_values, new_values, reason)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    actor_id,
                    action.value,
                    entity_type,
                    None if entity_id is None else str(entity_id),
                    to_json(before),
                    to_json(after),
                    reason,
                ),
            )
