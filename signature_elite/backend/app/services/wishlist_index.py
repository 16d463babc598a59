# backend/app/services/wishlist_index.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.errors import NotFound
from ..domain.policy import authorize
from ..models import WishlistItem
from .property_registry import get_property

log = logging.getLogger(__name__)

SNAPSHOT_FIELDS = (
    "title",
    "location",
    "image",
    "agent_name",
    "agent_email",
    "min_price",
    "max_price",
    "verification_status",
)


def _get_item(db: Session, *, user_email: str, property_id: int) -> Optional[WishlistItem]:
    return db.scalar(
        select(WishlistItem).where(
            WishlistItem.user_email == user_email,
            WishlistItem.property_id == int(property_id),
        )
    )


def _build_snapshot(prop: Any, overrides: Optional[dict[str, Any]]) -> dict[str, Any]:
    """
    Display copy of the listing taken now. It is not kept in sync with later
    listing edits; a repeated add refreshes it.
    """
    snap = {k: getattr(prop, k, None) for k in SNAPSHOT_FIELDS}
    for k, v in (overrides or {}).items():
        if k in SNAPSHOT_FIELDS and v is not None:
            snap[k] = v
    return snap


def add(
    db: Session,
    *,
    principal: Principal,
    property_id: int,
    snapshot: Optional[dict[str, Any]] = None,
) -> WishlistItem:
    """Upsert keyed by (user_email, property_id); never creates a duplicate."""
    authorize(principal, "wishlist.write")
    user_email = principal.email.strip().lower()

    prop = get_property(db, property_id=property_id, principal=principal)
    fields = _build_snapshot(prop, snapshot)
    now = datetime.utcnow()

    row = _get_item(db, user_email=user_email, property_id=prop.id)
    if row is None:
        row = WishlistItem(user_email=user_email, property_id=prop.id, created_at=now, updated_at=now, **fields)
        db.add(row)
        try:
            db.commit()
            db.refresh(row)
            log.info("wishlist add", extra={"user_email": user_email, "property_id": prop.id})
            return row
        except IntegrityError:
            # lost an insert race on the unique key; refresh the winner instead
            db.rollback()
            row = _get_item(db, user_email=user_email, property_id=prop.id)
            if row is None:
                raise

    for k, v in fields.items():
        setattr(row, k, v)
    row.updated_at = now
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def remove(db: Session, *, principal: Principal, property_id: int) -> None:
    authorize(principal, "wishlist.write")
    row = _get_item(db, user_email=principal.email.strip().lower(), property_id=property_id)
    if row is None:
        raise NotFound("wishlist entry not found")
    db.delete(row)
    db.commit()


def list_for_user(db: Session, *, principal: Principal) -> list[WishlistItem]:
    q = (
        select(WishlistItem)
        .where(WishlistItem.user_email == principal.email.strip().lower())
        .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
    )
    return list(db.scalars(q).all())
