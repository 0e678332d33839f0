from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..users.model import Identity


@dataclass(frozen=True)
class Match:
    identity: Identity
    distance: float
    confidence: float

    @property
    def user_id(self) -> int:
        return self.identity.user_id


@dataclass(frozen=True)
class NoMatch:
    """No registered descriptor was strictly closer than the threshold."""

    threshold: float
    best_distance: Optional[float] = None


MatchResult = Union[Match, NoMatch]
