# backend/app/services/property_registry.py
from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.errors import Conflict, Forbidden, InvalidInput, NotFound
from ..domain.policy import authorize
from ..domain.state_machines import ensure_verification_transition, normalize_verification_status
from ..models import Property
from .ownership import get_user_by_email, must_get_property

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Listing registry
# -----------------------------------------------------------------------------
# Owns listing rows plus their verification / advertisement state.
# Public reads only ever see verified listings.
# -----------------------------------------------------------------------------

EDITABLE_TEXT_FIELDS = ("title", "location", "image", "description", "agent_name")
EDITABLE_NUMERIC_FIELDS: dict[str, type] = {
    "min_price": float,
    "max_price": float,
    "bedrooms": int,
    "bathrooms": float,
}

SORT_ALIASES = {
    "asc": "ascending",
    "ascending": "ascending",
    "desc": "descending",
    "descending": "descending",
    "": "none",
    "none": "none",
}


def _utcnow() -> datetime:
    return datetime.utcnow()


def coerce_number(value: Any, *, field: str, cast: type = float) -> float | int:
    """Missing or blank => 0; anything non-numeric is InvalidInput."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return cast(0)
    if isinstance(value, bool):
        raise InvalidInput(f"{field} must be a number")
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be a number")
    if not math.isfinite(num):
        raise InvalidInput(f"{field} must be a finite number")
    if num < 0:
        raise InvalidInput(f"{field} cannot be negative")
    return int(num) if cast is int else float(num)


def normalize_facilities(value: Any) -> list[str]:
    """
    Accepts a comma-delimited string or any sequence of strings and returns
    a de-duplicated list of trimmed, non-empty entries in first-seen order.
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        parts = value
    else:
        raise InvalidInput("facilities must be a string or a list of strings")

    out: list[str] = []
    seen: set[str] = set()
    for p in parts:
        s = str(p if p is not None else "").strip()
        if not s or s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _check_price_range(min_price: float, max_price: float) -> None:
    if max_price and min_price > max_price:
        raise InvalidInput("min_price cannot exceed max_price")


def _snapshot(row: Property) -> dict[str, Any]:
    return {
        "title": row.title,
        "location": row.location,
        "min_price": row.min_price,
        "max_price": row.max_price,
        "bedrooms": row.bedrooms,
        "bathrooms": row.bathrooms,
        "facilities": row.facilities,
        "verification_status": row.verification_status,
        "advertised": row.advertised,
    }


def _ensure_agent_in_good_standing(db: Session, *, email: str) -> None:
    agent = get_user_by_email(db, email=email)
    if agent is None:
        raise Forbidden("unknown agent")
    if agent.role != "agent":
        raise Forbidden("only agents can list properties")
    if agent.is_fraud:
        raise Forbidden("agent is flagged as fraud")


def create_property(db: Session, *, principal: Principal, fields: dict[str, Any]) -> Property:
    authorize(principal, "property.create")

    agent_email = (principal.email or "").strip().lower()
    _ensure_agent_in_good_standing(db, email=agent_email)

    title = _text(fields.get("title"))
    location = _text(fields.get("location"))
    if not title or not location or not agent_email:
        raise InvalidInput("title, location and agent_email are required")

    nums = {k: coerce_number(fields.get(k), field=k, cast=c) for k, c in EDITABLE_NUMERIC_FIELDS.items()}
    _check_price_range(nums["min_price"], nums["max_price"])

    now = _utcnow()
    row = Property(
        agent_email=agent_email,
        agent_name=_text(fields.get("agent_name")),
        title=title,
        location=location,
        image=_text(fields.get("image")),
        description=_text(fields.get("description")),
        facilities_json=json.dumps(normalize_facilities(fields.get("facilities"))),
        verification_status="pending",
        advertised=False,
        accepted_offer_id=None,
        created_at=now,
        updated_at=now,
        **nums,
    )
    db.add(row)
    db.flush()
    audit_write(
        db,
        actor_email=agent_email,
        action="property.create",
        entity_type="Property",
        entity_id=row.id,
        after=_snapshot(row),
    )
    db.commit()
    db.refresh(row)

    log.info("property created", extra={"property_id": row.id, "user_email": agent_email})
    return row


def update_property(db: Session, *, principal: Principal, property_id: int, fields: dict[str, Any]) -> Property:
    """
    Full update of the agent-editable fields. Numeric fields missing from the
    payload become 0. Verification status and the advertised flag are untouched.
    """
    row = must_get_property(db, property_id=property_id)
    authorize(principal, "property.update", owner_email=row.agent_email)

    title = _text(fields.get("title"))
    location = _text(fields.get("location"))
    if not title or not location:
        raise InvalidInput("title and location are required")

    nums = {k: coerce_number(fields.get(k), field=k, cast=c) for k, c in EDITABLE_NUMERIC_FIELDS.items()}
    _check_price_range(nums["min_price"], nums["max_price"])

    before = _snapshot(row)
    row.title = title
    row.location = location
    for k in ("image", "description", "agent_name"):
        if k in fields:
            setattr(row, k, _text(fields.get(k)))
    for k, v in nums.items():
        setattr(row, k, v)
    row.facilities_json = json.dumps(normalize_facilities(fields.get("facilities")))
    row.updated_at = _utcnow()

    db.add(row)
    audit_write(
        db,
        actor_email=principal.email,
        action="property.update",
        entity_type="Property",
        entity_id=row.id,
        before=before,
        after=_snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


def set_verification(db: Session, *, principal: Principal, property_id: int, status: str) -> Property:
    authorize(principal, "property.verify")
    target = normalize_verification_status(status)

    row = must_get_property(db, property_id=property_id)
    current = row.verification_status
    ensure_verification_transition(current, target)

    row.verification_status = target
    row.updated_at = _utcnow()
    db.add(row)
    audit_write(
        db,
        actor_email=principal.email,
        action="property.verification",
        entity_type="Property",
        entity_id=row.id,
        before={"verification_status": current},
        after={"verification_status": target},
    )
    db.commit()
    db.refresh(row)

    log.info("property verification %s -> %s", current, target, extra={"property_id": row.id})
    return row


def set_advertised(db: Session, *, principal: Principal, property_id: int, advertised: bool = True) -> Property:
    authorize(principal, "property.advertise")
    row = must_get_property(db, property_id=property_id)

    if advertised:
        if row.verification_status != "verified":
            raise Conflict("only verified listings can be advertised")
        agent = get_user_by_email(db, email=row.agent_email)
        if agent is not None and agent.is_fraud:
            raise Forbidden("listing agent is flagged as fraud")

    if bool(row.advertised) == bool(advertised):
        return row

    row.advertised = bool(advertised)
    row.updated_at = _utcnow()
    db.add(row)
    audit_write(
        db,
        actor_email=principal.email,
        action="property.advertise",
        entity_type="Property",
        entity_id=row.id,
        before={"advertised": not advertised},
        after={"advertised": bool(advertised)},
    )
    db.commit()
    db.refresh(row)
    return row


def normalize_sort_direction(sort_direction: Optional[str]) -> str:
    key = (sort_direction or "").strip().lower()
    if key not in SORT_ALIASES:
        raise InvalidInput("sort must be one of ascending, descending, none")
    return SORT_ALIASES[key]


def list_public(db: Session, *, search_text: Optional[str] = None, sort_direction: Optional[str] = None) -> list[Property]:
    direction = normalize_sort_direction(sort_direction)

    q = select(Property).where(Property.verification_status == "verified")

    needle = (search_text or "").strip().lower()
    if needle:
        q = q.where(func.lower(Property.location).contains(needle, autoescape=True))

    if direction == "ascending":
        q = q.order_by(Property.min_price.asc(), Property.id.asc())
    elif direction == "descending":
        q = q.order_by(Property.min_price.desc(), Property.id.asc())
    else:
        q = q.order_by(Property.id.asc())

    return list(db.scalars(q).all())


def list_advertised(db: Session) -> list[Property]:
    q = (
        select(Property)
        .where(Property.verification_status == "verified", Property.advertised.is_(True))
        .order_by(Property.id.asc())
    )
    return list(db.scalars(q).all())


def list_for_agent(db: Session, *, principal: Principal) -> list[Property]:
    authorize(principal, "property.list_mine")
    q = select(Property).where(Property.agent_email == principal.email).order_by(Property.id.asc())
    return list(db.scalars(q).all())


def list_all(db: Session, *, principal: Principal) -> list[Property]:
    authorize(principal, "property.list_all")
    return list(db.scalars(select(Property).order_by(Property.id.asc())).all())


def get_property(db: Session, *, property_id: int, principal: Optional[Principal] = None) -> Property:
    row = must_get_property(db, property_id=property_id)
    if row.verification_status == "verified":
        return row
    try:
        authorize(principal, "property.view_unverified", owner_email=row.agent_email)
    except Forbidden:
        raise NotFound("property not found")
    return row


def delete_property(db: Session, *, principal: Principal, property_id: int) -> None:
    row = must_get_property(db, property_id=property_id)
    authorize(principal, "property.delete", owner_email=row.agent_email)

    audit_write(
        db,
        actor_email=principal.email,
        action="property.delete",
        entity_type="Property",
        entity_id=row.id,
        before=_snapshot(row),
    )
    db.delete(row)
    db.commit()
    log.info("property deleted", extra={"property_id": property_id, "user_email": principal.email})


def delete_all_by_agent(db: Session, *, agent_email: str) -> int:
    """
    System-invoked by the fraud cascade: removes every listing the agent owns
    regardless of state. No ownership check, no commit. Safe to re-run.
    """
    email = (agent_email or "").strip().lower()
    res = db.execute(delete(Property).where(Property.agent_email == email))
    return int(res.rowcount or 0)
