# backend/app/models.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


# -----------------------------
# Users
# -----------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")  # user|agent|admin
    is_fraud: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Listings
# -----------------------------
class Property(Base):
    __tablename__ = "properties"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    agent_email: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    agent_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    min_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    max_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    facilities_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    verification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )  # pending|verified|rejected
    advertised: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # exclusivity slot: id of the single accepted/paid offer, claimed by compare-and-swap
    accepted_offer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def facilities(self) -> list[str]:
        try:
            v = json.loads(self.facilities_json or "[]")
        except ValueError:
            return []
        return [str(x) for x in v] if isinstance(v, list) else []


# -----------------------------
# Offers
# -----------------------------
class Offer(Base):
    __tablename__ = "offers"
    __table_args__ = (
        Index("ix_offers_property_status", "property_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # plain reference: offers outlive their property when the fraud cascade removes it
    property_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    property_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    property_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    property_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    agent_email: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    agent_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    buyer_email: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    buyer_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)

    offer_amount: Mapped[float] = mapped_column(Float, nullable=False)
    buying_date: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending|accepted|rejected|paid
    transaction_id: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


# -----------------------------
# Wishlist / Reviews
# -----------------------------
class WishlistItem(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (
        UniqueConstraint("user_email", "property_id", name="uq_wishlist_user_property"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_email: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # display snapshot, copied at write time
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    agent_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    agent_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    min_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    verification_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    property_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)

    user_email: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    user_photo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
