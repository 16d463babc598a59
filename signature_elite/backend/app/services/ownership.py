# backend/app/services/ownership.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import NotFound
from ..models import Offer, Property, Review, User


def must_get_property(db: Session, *, property_id: int) -> Property:
    row = db.scalar(select(Property).where(Property.id == int(property_id)))
    if not row:
        raise NotFound("property not found")
    return row


def must_get_offer(db: Session, *, offer_id: int) -> Offer:
    row = db.scalar(select(Offer).where(Offer.id == int(offer_id)))
    if not row:
        raise NotFound("offer not found")
    return row


def must_get_user(db: Session, *, user_id: int) -> User:
    row = db.scalar(select(User).where(User.id == int(user_id)))
    if not row:
        raise NotFound("user not found")
    return row


def get_user_by_email(db: Session, *, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == (email or "").strip().lower()))


def must_get_review(db: Session, *, review_id: int) -> Review:
    row = db.scalar(select(Review).where(Review.id == int(review_id)))
    if not row:
        raise NotFound("review not found")
    return row
