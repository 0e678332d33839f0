from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..audit.service import AuditTrail
from ..common.datetime_utils import now_local
from ..common.validators import require_month
from ..core.enums import AuditAction, Role
from ..core.exceptions import AuthorizationError
from .repository import PayrollLockRepository

logger = logging.getLogger(__name__)


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def due_period(today: date, lock_day: int) -> Optional[tuple[int, int]]:
    """(year, month) that should be locked by ``today``, if any.

    The previous month becomes due on the configured lock day.
    """
    if today.day < int(lock_day):
        return None
    return previous_month(today)


class PayrollLockService:
    """Payroll period locking.

    Locking is one-way: there is no unlock operation, a locked month stays
    immutable for every writer of the engine.
    """

    def __init__(
        self,
        locks: PayrollLockRepository,
        *,
        audit: Optional[AuditTrail] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._locks = locks
        self._audit = audit
        self._clock = clock

    def is_date_locked(self, work_date: date) -> bool:
        return self._locks.is_locked(year=work_date.year, month=work_date.month)

    def lock(self, *, actor_id: int, actor_role: Role, month: int, year: int) -> int:
        if actor_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can lock attendance for payroll")
        month, year = require_month(month, year)

        count = self._locks.lock_period(year=year, month=month, locked_by=int(actor_id), locked_at=self._clock())
        logger.info("Payroll lock %02d/%d by user %s: %d record(s) locked", month, year, actor_id, count)

        if self._audit:
            self._audit.record(
                actor_id=actor_id,
                action=AuditAction.UPDATE,
                entity_type="attendance_records",
                after={"action": "PAYROLL_LOCK", "month": month, "year": year, "records_locked": count},
                reason="Payroll period lock",
            )
        return count

    def lock_due_period(self, *, actor_id: int, actor_role: Role, lock_day: int, today: Optional[date] = None) -> Optional[dict]:
        period = due_period(today or self._clock().date(), lock_day)
        if period is None:
            return None
        year, month = period
        count = self.lock(actor_id=actor_id, actor_role=actor_role, month=month, year=year)
        return {"month": month, "year": year, "records_locked": count}
