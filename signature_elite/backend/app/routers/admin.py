# backend/app/routers/admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import entity_history, event_payload
from ..domain.policy import authorize
from ..schemas import AuditEventOut, ConsistencyReportOut
from ..services import consistency

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/consistency", response_model=ConsistencyReportOut)
def consistency_report(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return ConsistencyReportOut.model_validate(consistency.audit(db, principal=p))


@router.post("/consistency/reconcile", response_model=ConsistencyReportOut)
def consistency_reconcile(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return ConsistencyReportOut.model_validate(consistency.reconcile(db, principal=p))


@router.get("/audit/{entity_type}/{entity_id}", response_model=list[AuditEventOut])
def audit_history(entity_type: str, entity_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    authorize(p, "audit.read")
    out: list[AuditEventOut] = []
    for row in entity_history(db, entity_type=entity_type, entity_id=entity_id):
        before, after = event_payload(row)
        out.append(
            AuditEventOut(
                id=row.id,
                actor_email=row.actor_email,
                action=row.action,
                entity_type=row.entity_type,
                entity_id=row.entity_id,
                before=before,
                after=after,
                created_at=row.created_at,
            )
        )
    return out
