from __future__ import annotations

from typing import Optional, Protocol

from .model import Shift


class ShiftRepository(Protocol):
    def get_for_user(self, user_id: int) -> Optional[Shift]:
        raise NotImplementedError
