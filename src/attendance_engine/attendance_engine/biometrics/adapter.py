"""Storage-boundary adapter for face descriptor payloads.

Three legacy shapes exist in the ``users.face_descriptor`` column:

- ``{"descriptor": [...]}``            single vector
- ``{"face_descriptors": [[...], ...]}`` several vectors (multi-image registration)
- ``[...]``                            bare vector

Everything is converted to a list of vectors here; the matcher never sees
the raw column. ``to_storage`` produces the canonical column value written by
``scripts/migrate_face_descriptors.py``.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

CANONICAL_KEY = "face_descriptors"


def _is_vector(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(x, (int, float)) and not isinstance(x, bool) for x in value
    )


def normalize_descriptors(raw: Any) -> List[List[float]]:
    """Return the stored descriptors as a list of float vectors.

    Unknown shapes yield an empty list. Vector length is not checked here;
    wrong-length vectors are skipped by the matcher.
    """
    if raw is None:
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except ValueError:
            return []

    if isinstance(raw, dict):
        if CANONICAL_KEY in raw and isinstance(raw[CANONICAL_KEY], list):
            vectors = raw[CANONICAL_KEY]
        elif "descriptor" in raw:
            vectors = [raw["descriptor"]]
        else:
            return []
    elif isinstance(raw, list):
        if _is_vector(raw):
            vectors = [raw] if raw else []
        else:
            vectors = raw
    else:
        return []

    return [[float(x) for x in v] for v in vectors if _is_vector(v) and v]


def is_canonical(raw: Any) -> bool:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return False
    return isinstance(raw, dict) and set(raw) == {CANONICAL_KEY}


def to_storage(descriptors: List[List[float]]) -> Optional[str]:
    if not descriptors:
        return None
    return json.dumps({CANONICAL_KEY: descriptors})
