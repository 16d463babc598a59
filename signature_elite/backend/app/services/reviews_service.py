# backend/app/services/reviews_service.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.errors import InvalidInput
from ..domain.policy import authorize
from ..models import Review
from .ownership import get_user_by_email, must_get_review
from .property_registry import get_property


def _rating(value: Any) -> int:
    try:
        r = int(value)
    except (TypeError, ValueError):
        raise InvalidInput("rating must be an integer between 1 and 5")
    if r < 1 or r > 5:
        raise InvalidInput("rating must be an integer between 1 and 5")
    return r


def add_review(
    db: Session,
    *,
    principal: Principal,
    property_id: int,
    rating: Any,
    comment: Optional[str] = None,
) -> Review:
    authorize(principal, "review.create")
    prop = get_property(db, property_id=property_id, principal=principal)
    user = get_user_by_email(db, email=principal.email)

    row = Review(
        property_id=prop.id,
        property_title=prop.title,
        agent_name=prop.agent_name,
        user_email=principal.email,
        user_name=user.name if user else None,
        user_photo=user.photo_url if user else None,
        rating=_rating(rating),
        comment=(comment or "").strip(),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_for_property(db: Session, *, property_id: int) -> list[Review]:
    q = select(Review).where(Review.property_id == int(property_id)).order_by(desc(Review.created_at), desc(Review.id))
    return list(db.scalars(q).all())


def list_for_user(db: Session, *, principal: Principal) -> list[Review]:
    q = select(Review).where(Review.user_email == principal.email).order_by(desc(Review.id))
    return list(db.scalars(q).all())


def list_all(db: Session, *, principal: Principal) -> list[Review]:
    authorize(principal, "review.list_all")
    return list(db.scalars(select(Review).order_by(desc(Review.id))).all())


def delete_review(db: Session, *, principal: Principal, review_id: int) -> None:
    row = must_get_review(db, review_id=review_id)
    authorize(principal, "review.delete", owner_email=row.user_email)

    audit_write(
        db,
        actor_email=principal.email,
        action="review.delete",
        entity_type="Review",
        entity_id=row.id,
        before={"property_id": row.property_id, "rating": row.rating},
    )
    db.delete(row)
    db.commit()
