from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from ..core.enums import AuditAction


class AuditSink(Protocol):
    """Append-only audit trail, called on every mutating transition."""

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
        raise NotImplementedError
