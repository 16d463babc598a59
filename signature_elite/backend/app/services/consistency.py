# backend/app/services/consistency.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.policy import authorize
from ..domain.state_machines import ACTIVE_OFFER_STATUSES
from ..models import Offer, Property, User
from .trust_enforcer import rerun_cascade

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusivityViolation:
    property_id: int
    offer_ids: list[int]


@dataclass(frozen=True)
class FraudResidue:
    agent_email: str
    listing_count: int


@dataclass
class ConsistencyReport:
    exclusivity_violations: list[ExclusivityViolation] = field(default_factory=list)
    fraud_residue: list[FraudResidue] = field(default_factory=list)
    listings_removed: int = 0
    reconcile_errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.exclusivity_violations and not self.fraud_residue


def find_exclusivity_violations(db: Session) -> list[ExclusivityViolation]:
    """
    Properties with more than one accepted/paid offer. These are reported, never
    auto-repaired: picking the surviving offer is a human decision.
    """
    pids = db.scalars(
        select(Offer.property_id)
        .where(Offer.status.in_(ACTIVE_OFFER_STATUSES))
        .group_by(Offer.property_id)
        .having(func.count(Offer.id) > 1)
        .order_by(Offer.property_id)
    ).all()

    out: list[ExclusivityViolation] = []
    for pid in pids:
        ids = db.scalars(
            select(Offer.id)
            .where(Offer.property_id == pid, Offer.status.in_(ACTIVE_OFFER_STATUSES))
            .order_by(Offer.id)
        ).all()
        out.append(ExclusivityViolation(property_id=int(pid), offer_ids=[int(i) for i in ids]))
    return out


def find_fraud_residue(db: Session) -> list[FraudResidue]:
    """Fraud-flagged users that still own listings (an interrupted cascade)."""
    rows = db.execute(
        select(User.email, func.count(Property.id))
        .join(Property, Property.agent_email == User.email)
        .where(User.is_fraud.is_(True))
        .group_by(User.email)
        .order_by(User.email)
    ).all()
    return [FraudResidue(agent_email=str(email), listing_count=int(n)) for email, n in rows]


def audit(db: Session, *, principal: Principal) -> ConsistencyReport:
    authorize(principal, "consistency.audit")
    report = ConsistencyReport(
        exclusivity_violations=find_exclusivity_violations(db),
        fraud_residue=find_fraud_residue(db),
    )
    if report.exclusivity_violations:
        log.warning("exclusivity violations detected on %d listings", len(report.exclusivity_violations))
    return report


def reconcile(db: Session, *, principal: Principal) -> ConsistencyReport:
    """Re-run the fraud cascade for every residue entry, then re-audit."""
    authorize(principal, "consistency.audit")

    removed = 0
    errors: list[str] = []
    for residue in find_fraud_residue(db):
        try:
            removed += rerun_cascade(db, agent_email=residue.agent_email, actor_email=principal.email)
        except SQLAlchemyError as e:
            db.rollback()
            log.exception("fraud cascade rerun failed", extra={"user_email": residue.agent_email})
            errors.append(f"{residue.agent_email}: {type(e).__name__}")

    report = audit(db, principal=principal)
    report.listings_removed = removed
    report.reconcile_errors = errors
    return report
