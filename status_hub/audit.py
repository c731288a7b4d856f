"""Best-effort audit trail recorder fed by post-commit events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from status_hub.models.entities import AuditEntityType, AuditLog
from status_hub.store.document_store import AUDIT_LOGS, DocumentStore


logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LIMIT = 50


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AuditEvent:
    """Emitted once the primary write has returned successfully."""

    action: str
    entity_type: AuditEntityType
    entity_id: str
    user_name: str
    details: str


class AuditRecorder:
    """Appends audit documents; failures are logged and kept, never raised."""

    def __init__(self, store: DocumentStore, clock: Callable[[], str] = utc_now) -> None:
        self.store = store
        self.clock = clock
        self.failed_events: list[AuditEvent] = []

    def record(
        self,
        action: str,
        entity_type: AuditEntityType,
        entity_id: str,
        user_name: str,
        details: str,
    ) -> None:
        self.emit(
            AuditEvent(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                user_name=user_name,
                details=details,
            )
        )

    def emit(self, event: AuditEvent) -> None:
        try:
            self.store.insert(
                AUDIT_LOGS,
                {
                    "action": event.action,
                    "entityType": event.entity_type.value,
                    "entityId": event.entity_id,
                    "userName": event.user_name,
                    "details": event.details,
                    "createdAt": self.clock(),
                },
            )
        except Exception:
            self.failed_events.append(event)
            logger.warning(
                "Audit write failed for %s %s:%s; primary write unaffected",
                event.action,
                event.entity_type.value,
                event.entity_id,
                exc_info=True,
                extra={"action": event.action, "entity_id": event.entity_id},
            )

    def list_recent(self, limit: int | None = DEFAULT_AUDIT_LIMIT) -> list[AuditLog]:
        rows = self.store.list(AUDIT_LOGS, order_by="createdAt", descending=True, limit=limit)
        return [AuditLog.model_validate(row) for row in rows]

    def replay_failed(self) -> int:
        """Re-emit events whose write failed; returns how many landed this time."""

        pending, self.failed_events = self.failed_events, []
        for event in pending:
            self.emit(event)
        return len(pending) - len(self.failed_events)
