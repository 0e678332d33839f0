from __future__ import annotations

from datetime import datetime
from typing import Protocol


class PayrollLockRepository(Protocol):
    def is_locked(self, *, year: int, month: int) -> bool:
        raise NotImplementedError

    def lock_period(self, *, year: int, month: int, locked_by: int, locked_at: datetime) -> int:
        """Record the period lock and lock its records in one transaction.

        Returns the number of records that were not locked before.
        """

        raise NotImplementedError
