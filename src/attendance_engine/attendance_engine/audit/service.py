from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.enums import AuditAction
from ..core.exceptions import StoreUnavailableError
from .repository import AuditSink

logger = logging.getLogger(__name__)


class AuditTrail:
    """Writes audit entries after a transition has been committed.

    The attendance write is already durable at this point, so a transient
    audit-store failure is logged with the full entry instead of turning a
    successful check-in into an error the caller would retry.
    """

    def __init__(self, sink: AuditSink):
        self._sink = sink

    def record(
        self,
        *,
        actor_id: Optional[int],
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[Any] = None,
        before: Optional[Mapping[str, Any]] = None,
        after: Optional[Mapping[str, Any]] = None,
        reason: Optional[str] = None,
    ) -> None:
        try:
            self._sink.record(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                before=before,
                after=after,
                reason=reason,
            )
        except StoreUnavailableError:
            logger.exception(
                "Audit entry not written: actor=%s action=%s entity=%s/%s after=%s reason=%s",
                actor_id,
                action.value,
                entity_type,
                entity_id,
                after,
                reason,
            )
