# backend/app/services/offer_ledger.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.audit import audit_write
from ..domain.errors import Conflict, Forbidden, InvalidInput, NotFound
from ..domain.policy import authorize
from ..domain.state_machines import ensure_offer_transition, normalize_offer_status
from ..models import Offer, Property
from ..clients.payment_gateway import PaymentIntent
from .locks_service import property_lock
from .ownership import get_user_by_email, must_get_offer, must_get_property
from .payment_bridge import PaymentBridge, to_minor_units

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Offer ledger
# -----------------------------------------------------------------------------
#   pending  -> accepted | rejected
#   accepted -> paid
#   rejected, paid are terminal
#
# Exclusivity: a property holds at most one accepted/paid offer. Acceptance
# claims Property.accepted_offer_id with a conditional UPDATE (slot must be
# empty) and then moves the offer out of pending with a second conditional
# UPDATE; both run under the per-property lock.
# -----------------------------------------------------------------------------

DECISIONS = ("accepted", "rejected")


def _utcnow() -> datetime:
    return datetime.utcnow()


def _positive_amount(value: Any) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidInput("offer_amount is required")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidInput("offer_amount must be a number")
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidInput("offer_amount must be a positive number")
    return amount


def _ensure_agent_not_fraud(db: Session, *, agent_email: str) -> None:
    agent = get_user_by_email(db, email=agent_email)
    if agent is None or agent.is_fraud:
        raise Forbidden("listing agent is not in good standing")


def _load_live_property(db: Session, offer: Offer) -> Property:
    row = db.scalar(select(Property).where(Property.id == offer.property_id))
    if row is None:
        # listing was removed (agent delete or fraud cascade); the offer is orphaned
        raise NotFound("property for this offer no longer exists")
    if (row.agent_email or "").lower() != (offer.agent_email or "").lower():
        # id now belongs to a different listing
        raise NotFound("property for this offer no longer exists")
    return row


def submit_offer(
    db: Session,
    *,
    principal: Principal,
    property_id: Optional[int],
    offer_amount: Any,
    buyer_name: Optional[str] = None,
    buying_date: Optional[str] = None,
) -> Offer:
    authorize(principal, "offer.submit")

    buyer_email = (principal.email or "").strip().lower()
    if property_id is None or not buyer_email or offer_amount is None:
        raise InvalidInput("property_id, buyer_email and offer_amount are required")
    amount = _positive_amount(offer_amount)

    prop = must_get_property(db, property_id=property_id)
    _ensure_agent_not_fraud(db, agent_email=prop.agent_email)
    if prop.verification_status != "verified":
        raise Forbidden("offers are only accepted on verified listings")
    if prop.accepted_offer_id is not None:
        raise Conflict("listing already has an accepted offer")

    if settings.enforce_offer_price_range and prop.max_price and prop.max_price > 0:
        if amount < float(prop.min_price or 0) or amount > float(prop.max_price):
            raise InvalidInput(
                f"offer_amount must be between {prop.min_price:g} and {prop.max_price:g}"
            )

    now = _utcnow()
    row = Offer(
        property_id=prop.id,
        property_title=prop.title,
        property_location=prop.location,
        property_image=prop.image,
        agent_email=prop.agent_email,
        agent_name=prop.agent_name,
        buyer_email=buyer_email,
        buyer_name=(buyer_name or "").strip() or None,
        offer_amount=amount,
        buying_date=(buying_date or "").strip() or None,
        status="pending",
        transaction_id=None,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    audit_write(
        db,
        actor_email=buyer_email,
        action="offer.submit",
        entity_type="Offer",
        entity_id=row.id,
        after={"property_id": prop.id, "offer_amount": amount, "status": "pending"},
    )
    db.commit()
    db.refresh(row)

    log.info("offer submitted", extra={"offer_id": row.id, "property_id": prop.id, "user_email": buyer_email})
    return row


def _reject(db: Session, *, principal: Principal, offer: Offer) -> Offer:
    ensure_offer_transition(offer.status, "rejected")
    res = db.execute(
        update(Offer)
        .where(Offer.id == offer.id, Offer.status == "pending")
        .values(status="rejected", updated_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    if int(res.rowcount or 0) != 1:
        db.rollback()
        raise Conflict("offer is no longer pending")

    audit_write(
        db,
        actor_email=principal.email,
        action="offer.reject",
        entity_type="Offer",
        entity_id=offer.id,
        before={"status": "pending"},
        after={"status": "rejected"},
    )
    db.commit()
    db.refresh(offer)
    return offer


def _accept(db: Session, *, principal: Principal, offer: Offer, prop: Property) -> Offer:
    ensure_offer_transition(offer.status, "accepted")
    _ensure_agent_not_fraud(db, agent_email=prop.agent_email)

    now = _utcnow()

    claimed = db.execute(
        update(Property)
        .where(Property.id == prop.id, Property.accepted_offer_id.is_(None))
        .values(accepted_offer_id=offer.id, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if int(claimed.rowcount or 0) != 1:
        db.rollback()
        raise Conflict("another offer on this listing is already accepted")

    moved = db.execute(
        update(Offer)
        .where(Offer.id == offer.id, Offer.status == "pending")
        .values(status="accepted", updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if int(moved.rowcount or 0) != 1:
        # both writes are still uncommitted; dropping them releases the slot
        db.rollback()
        raise Conflict("offer is no longer pending")

    siblings = db.execute(
        update(Offer)
        .where(Offer.property_id == prop.id, Offer.id != offer.id, Offer.status == "pending")
        .values(status="rejected", updated_at=now)
        .execution_options(synchronize_session=False)
    )
    auto_rejected = int(siblings.rowcount or 0)

    audit_write(
        db,
        actor_email=principal.email,
        action="offer.accept",
        entity_type="Offer",
        entity_id=offer.id,
        before={"status": "pending"},
        after={"status": "accepted", "siblings_rejected": auto_rejected},
    )
    db.commit()
    db.refresh(offer)

    log.info(
        "offer accepted, %d sibling offers rejected",
        auto_rejected,
        extra={"offer_id": offer.id, "property_id": prop.id},
    )
    return offer


def decide_offer(db: Session, *, principal: Principal, offer_id: int, decision: str) -> Offer:
    """
    Owning agent (or admin) accepts or rejects a pending offer. Accepting
    rejects every other pending offer on the same listing.
    """
    target = normalize_offer_status(decision)
    if target not in DECISIONS:
        raise InvalidInput(f"decision must be one of {list(DECISIONS)}")

    offer = must_get_offer(db, offer_id=offer_id)
    prop = _load_live_property(db, offer)
    authorize(principal, "offer.decide", owner_email=prop.agent_email)

    with property_lock(prop.id):
        db.refresh(offer)
        if target == "rejected":
            return _reject(db, principal=principal, offer=offer)
        return _accept(db, principal=principal, offer=offer, prop=prop)


def request_payment(
    db: Session,
    *,
    principal: Principal,
    offer_id: int,
    bridge: PaymentBridge,
    amount: Any = None,
) -> PaymentIntent:
    """
    Buyer asks for a payment handle on an accepted offer. Does not change the
    offer; confirmation arrives separately through confirm_payment.
    """
    offer = must_get_offer(db, offer_id=offer_id)
    authorize(principal, "offer.pay", owner_email=offer.buyer_email)

    if offer.status != "accepted":
        raise Conflict(f"payment can only be requested for an accepted offer (status={offer.status})")

    if amount is None:
        amount = offer.offer_amount
    elif to_minor_units(amount) != to_minor_units(offer.offer_amount):
        raise InvalidInput("amount does not match the accepted offer")

    return bridge.create_intent(amount, metadata={"offer_id": offer.id, "property_id": offer.property_id})


def _settle_paid(offer: Offer, transaction_id: str) -> Offer:
    if offer.transaction_id == transaction_id:
        return offer
    raise Conflict("offer is already paid with a different transaction id")


def confirm_payment(db: Session, *, principal: Principal, offer_id: int, transaction_id: Optional[str]) -> Offer:
    """
    accepted -> paid, storing the gateway transaction id.
    Re-confirming with the same id is a no-op; a different id is a Conflict.
    """
    tx = (transaction_id or "").strip()
    if not tx:
        raise InvalidInput("transaction_id is required")

    offer = must_get_offer(db, offer_id=offer_id)
    authorize(principal, "offer.confirm", owner_email=offer.buyer_email)

    with property_lock(offer.property_id):
        db.refresh(offer)
        if offer.status == "paid":
            return _settle_paid(offer, tx)
        if offer.status != "accepted":
            raise Conflict(f"offer must be accepted before payment (status={offer.status})")

        now = _utcnow()
        res = db.execute(
            update(Offer)
            .where(Offer.id == offer.id, Offer.status == "accepted")
            .values(status="paid", transaction_id=tx, paid_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if int(res.rowcount or 0) != 1:
            db.rollback()
            db.refresh(offer)
            if offer.status == "paid":
                return _settle_paid(offer, tx)
            raise Conflict(f"offer must be accepted before payment (status={offer.status})")

        audit_write(
            db,
            actor_email=principal.email,
            action="offer.paid",
            entity_type="Offer",
            entity_id=offer.id,
            before={"status": "accepted"},
            after={"status": "paid", "transaction_id": tx},
        )
        db.commit()
        db.refresh(offer)

    log.info("offer paid", extra={"offer_id": offer.id, "property_id": offer.property_id})
    return offer


def list_for_buyer(db: Session, *, principal: Principal, buyer_email: Optional[str] = None) -> list[Offer]:
    email = (buyer_email or principal.email or "").strip().lower()
    authorize(principal, "offer.list_buyer", owner_email=email)
    q = select(Offer).where(Offer.buyer_email == email).order_by(Offer.id.desc())
    return list(db.scalars(q).all())


def list_for_agent(
    db: Session,
    *,
    principal: Principal,
    agent_email: Optional[str] = None,
    status: Optional[str] = None,
) -> list[Offer]:
    email = (agent_email or principal.email or "").strip().lower()
    authorize(principal, "offer.list_agent", owner_email=email)
    q = select(Offer).where(Offer.agent_email == email)
    if status:
        q = q.where(Offer.status == normalize_offer_status(status))
    return list(db.scalars(q.order_by(Offer.id.desc())).all())


def list_sold_for_agent(db: Session, *, principal: Principal, agent_email: Optional[str] = None) -> list[Offer]:
    return list_for_agent(db, principal=principal, agent_email=agent_email, status="paid")


@dataclass(frozen=True)
class SalesSummary:
    agent_email: str
    sold_count: int
    total_sold_amount: float


def agent_sales_summary(db: Session, *, principal: Principal, agent_email: Optional[str] = None) -> SalesSummary:
    email = (agent_email or principal.email or "").strip().lower()
    authorize(principal, "offer.list_agent", owner_email=email)
    count, total = db.execute(
        select(func.count(Offer.id), func.coalesce(func.sum(Offer.offer_amount), 0.0)).where(
            Offer.agent_email == email, Offer.status == "paid"
        )
    ).one()
    return SalesSummary(agent_email=email, sold_count=int(count or 0), total_sold_amount=float(total or 0.0))
