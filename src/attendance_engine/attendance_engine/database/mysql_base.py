from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import StoreUnavailableError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


def is_duplicate_key(exc: BaseException) -> bool:
    return isinstance(exc, mysql.connector.IntegrityError) and getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


# Server-side contention; the transaction was rolled back and can be retried.
TRANSIENT_ERRNOS = frozenset({errorcode.ER_LOCK_WAIT_TIMEOUT, errorcode.ER_LOCK_DEADLOCK})


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, mysql.connector.DatabaseError) and getattr(exc, "errno", None) in TRANSIENT_ERRNOS


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection, one transaction.

    Commits on success and rolls back on any error. Connection-level
    failures (refused, timed out, lost), lock-wait timeouts and deadlocks
    surface as ``StoreUnavailableError``. Integrity errors propagate unchanged
    so repositories can interpret them.
    """
    try:
        conn = conn_factory.connect()
    except (mysql.connector.InterfaceError, mysql.connector.OperationalError) as exc:
        logger.warning("Database connection failed: %s", exc)
        raise StoreUnavailableError("Attendance store is unavailable, please retry") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except (mysql.connector.InterfaceError, mysql.connector.OperationalError) as exc:
        _safe_rollback(conn)
        logger.warning("Database operation failed: %s", exc)
        raise StoreUnavailableError("Attendance store is unavailable, please retry") from exc
    except mysql.connector.DatabaseError as exc:
        _safe_rollback(conn)
        if is_transient(exc):
            logger.warning("Database contention, transaction rolled back: %s", exc)
            raise StoreUnavailableError("Attendance store is busy, please retry") from exc
        raise
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # Connection already gone; the server discards the transaction.
        logger.debug("Rollback skipped, connection lost", exc_info=True)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
