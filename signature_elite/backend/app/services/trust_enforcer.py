# backend/app/services/trust_enforcer.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.policy import authorize
from ..models import User
from .ownership import get_user_by_email, must_get_user
from .property_registry import delete_all_by_agent

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FraudFlagResult:
    user: User
    listings_removed: int
    cascade_complete: bool


def rerun_cascade(db: Session, *, agent_email: str, actor_email: str | None = None) -> int:
    """
    Remove every listing owned by `agent_email` and commit.
    Idempotent: a second run removes nothing.
    """
    removed = delete_all_by_agent(db, agent_email=agent_email)
    agent = get_user_by_email(db, email=agent_email)
    audit_write(
        db,
        actor_email=actor_email,
        action="user.fraud.cascade",
        entity_type="User",
        entity_id=agent.id if agent is not None else agent_email,
        after={"agent_email": agent_email, "listings_removed": removed},
    )
    db.commit()
    return removed


def set_fraud_flag(db: Session, *, principal: Principal, user_id: int, is_fraud: bool) -> FraudFlagResult:
    """
    Flag (or un-flag) a user. Flagging removes all of the user's listings.

    The flag write and the listing removal are separate commits. If the removal
    fails the flag stays set, the failure is logged as a recoverable
    inconsistency and reported through `cascade_complete=False`; rerunning the
    cascade (or the consistency reconcile) repairs it. Un-flagging never
    restores removed listings.
    """
    authorize(principal, "user.manage")
    user = must_get_user(db, user_id=user_id)

    was_fraud = bool(user.is_fraud)
    user.is_fraud = bool(is_fraud)
    db.add(user)
    audit_write(
        db,
        actor_email=principal.email,
        action="user.fraud",
        entity_type="User",
        entity_id=user.id,
        before={"is_fraud": was_fraud},
        after={"is_fraud": bool(is_fraud)},
    )
    db.commit()
    db.refresh(user)

    log.info("fraud flag set to %s", bool(is_fraud), extra={"user_email": user.email, "user_id": user.id})

    if not is_fraud:
        return FraudFlagResult(user=user, listings_removed=0, cascade_complete=True)

    try:
        removed = rerun_cascade(db, agent_email=user.email, actor_email=principal.email)
    except SQLAlchemyError:
        db.rollback()
        log.exception(
            "fraud cascade incomplete; user flagged but listings remain (recoverable)",
            extra={"user_email": user.email, "user_id": user.id},
        )
        return FraudFlagResult(user=user, listings_removed=0, cascade_complete=False)

    log.info("fraud cascade removed %d listings", removed, extra={"user_email": user.email})
    return FraudFlagResult(user=user, listings_removed=removed, cascade_complete=True)
