from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import time
from typing import Optional

from ..core.constants import DEFAULT_FULL_DAY_HOURS


@dataclass(frozen=True)
class Shift:
    """Domain entity: a work shift and its classification thresholds.

    A threshold left as None falls back to the attendance config store.
    """

    shift_id: int
    shift_name: str
    start_time: time
    end_time: time
    grace_period_minutes: Optional[int] = None
    half_day_hours: Optional[float] = None
    full_day_hours: float = DEFAULT_FULL_DAY_HOURS
    code: Optional[str] = None

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time < self.start_time

    def with_fallbacks(self, *, grace_period_minutes: int, half_day_hours: float) -> "Shift":
        return replace(
            self,
            grace_period_minutes=self.grace_period_minutes if self.grace_period_minutes is not None else grace_period_minutes,
            half_day_hours=self.half_day_hours if self.half_day_hours is not None else half_day_hours,
        )
