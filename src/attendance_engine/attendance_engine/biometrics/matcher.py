from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

import numpy as np

from ..core.constants import DESCRIPTOR_LENGTH
from ..core.exceptions import AmbiguousMatchError, ValidationError
from ..users.model import Identity
from .model import Match, MatchResult, NoMatch

logger = logging.getLogger(__name__)


def _as_probe(probe: Sequence[float]) -> np.ndarray:
    if probe is None or isinstance(probe, (str, bytes)):
        raise ValidationError("Face scan is required for attendance")
    try:
        q = np.asarray(probe, dtype=np.float64)
    except (TypeError, ValueError):
        raise ValidationError("Face descriptor must be a list of numbers")
    if q.shape != (DESCRIPTOR_LENGTH,):
        raise ValidationError(
            f"Face descriptor must have {DESCRIPTOR_LENGTH} values",
            length=int(q.size),
        )
    if not np.isfinite(q).all():
        raise ValidationError("Face descriptor contains non-finite values")
    return q


def _min_distance(identity: Identity, q: np.ndarray) -> float:
    vectors = [v for v in identity.descriptors if len(v) == DESCRIPTOR_LENGTH]
    if not vectors:
        return math.inf
    stored = np.asarray(vectors, dtype=np.float64)
    stored = stored[np.isfinite(stored).all(axis=1)]
    if not len(stored):
        return math.inf
    return float(np.sqrt(((stored - q) ** 2).sum(axis=1)).min())


def identify(probe: Sequence[float], registry: Iterable[Identity], threshold: float) -> MatchResult:
    """Nearest-neighbour identification over every (user, descriptor) pair.

    Linear scan in ascending user id order. Returns a ``Match`` only when the
    global minimum distance is strictly below ``threshold``. If two different
    users share that minimum, the probe cannot be attributed and
    ``AmbiguousMatchError`` is raised.
    """
    if not threshold or threshold <= 0:
        raise ValidationError("Face recognition threshold must be positive", threshold=threshold)
    q = _as_probe(probe)

    best: Identity | None = None
    best_distance = math.inf
    tied: list[int] = []

    for identity in sorted(registry, key=lambda i: i.user_id):
        if not identity.is_active:
            continue
        d = _min_distance(identity, q)
        if d < best_distance:
            best, best_distance, tied = identity, d, [identity.user_id]
        elif d == best_distance and best is not None and identity.user_id != best.user_id:
            tied.append(identity.user_id)

    if best is None or not best_distance < threshold:
        logger.info(
            "No face match (best distance %s, threshold %.2f)",
            "n/a" if best is None else f"{best_distance:.4f}",
            threshold,
        )
        return NoMatch(threshold=threshold, best_distance=None if best is None else best_distance)

    if len(tied) > 1:
        raise AmbiguousMatchError(tied, best_distance)

    logger.debug("Face matched user %s at distance %.4f", best.user_id, best_distance)
    return Match(identity=best, distance=best_distance, confidence=max(0.0, 1.0 - best_distance))


def verify(probe: Sequence[float], identity: Identity, threshold: float) -> MatchResult:
    """1:1 check of a probe against one identity's registered faces."""
    return identify(probe, [identity], threshold)
