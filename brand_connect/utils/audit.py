"""
Audit trail for marketplace state changes.

Approvals, booking transitions, profile provisioning, catalog edits,
reviews and sign-in/out each produce one ``AuditEvent``.  The event is
validated, then written through the injected ``StructuredLogger`` with
``event="AUDIT"`` so the JSON line carries it as structured context.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from brand_connect.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: str = Field(min_length=1)
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)

    def as_context(self) -> dict[str, DetailValue]:
        """Flatten into ``extra`` keys; details are prefixed to avoid clashes."""
        context: dict[str, DetailValue] = {
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "audit_at": self.timestamp.isoformat(),
        }
        for key, value in self.details.items():
            context[f"detail_{key}"] = value
        return context


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Validate and log one audit entry, returning it.

    Args:
        logger: Destination logger.
        action: Verb for the change, e.g. ``"APPROVE"`` or ``"BOOKING_TRANSITION"``.
        entity_type: Affected model, e.g. ``"CreativeProfile"``.
        entity_id: Primary key of the affected row.
        user_id: Principal that performed the change.
        details: Flat extra context such as old and new status.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info(
        "AUDIT %s %s %s",
        event.action,
        event.entity_type,
        event.entity_id,
        extra={"event": "AUDIT", **event.as_context()},
    )
    return event
