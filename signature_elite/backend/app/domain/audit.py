# backend/app/domain/audit.py
"""
Append-only trail of trust decisions: verification, advertising, offer
decisions, payments, role and fraud changes, deletions.

Rows are added to the caller's session and committed with the state change
they describe, so a rolled-back change leaves no audit row behind.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import AuditEvent


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def audit_write(
    db: Session,
    *,
    actor_email: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    row = AuditEvent(
        actor_email=(actor_email or "").strip().lower() or None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def entity_history(db: Session, *, entity_type: str, entity_id: Any) -> list[AuditEvent]:
    """Oldest first."""
    q = (
        select(AuditEvent)
        .where(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == str(entity_id))
        .order_by(AuditEvent.id.asc())
    )
    return list(db.scalars(q).all())


def event_payload(row: AuditEvent) -> tuple[Optional[dict[str, Any]], Optional[dict[str, Any]]]:
    before = json.loads(row.before_json) if row.before_json else None
    after = json.loads(row.after_json) if row.after_json else None
    return before, after
