from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence


@dataclass(frozen=True)
class Identity:
    """Domain entity: an employee as seen by the verification engine.

    ``descriptors`` is always the canonical shape (a list of 128-length
    vectors); legacy payloads are converted by the repository.
    """

    user_id: int
    full_name: str
    employee_code: Optional[str] = None
    shift_id: Optional[int] = None
    is_active: bool = True
    descriptors: Sequence[Sequence[float]] = field(default_factory=tuple)

    @property
    def has_face(self) -> bool:
        return len(self.descriptors) > 0
