# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.auth import Principal
from app.db import SessionLocal, init_db
from app.models import Property, User
from app.services.property_registry import create_property, set_verification
from app.services.users_service import register_user_if_absent

DEMO_LISTING_TITLE = "Demo Listing"


@dataclass(frozen=True)
class SeedResult:
    admin_email: str
    agent_email: str
    buyer_email: str
    property_id: Optional[int]


def _ensure_user(db: Session, email: str, name: str, role: str) -> User:
    user, _ = register_user_if_absent(db, email=email, name=name)
    if user.role != role:
        # seeding bootstraps the first admin, so it writes roles directly
        user.role = role
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def seed_demo(
    *,
    admin_email: str = "admin@demo.local",
    agent_email: str = "agent@demo.local",
    buyer_email: str = "buyer@demo.local",
    create_sample_property: bool = True,
) -> SeedResult:
    init_db()
    db = SessionLocal()
    try:
        admin = _ensure_user(db, admin_email, "Admin", "admin")
        agent = _ensure_user(db, agent_email, "Agent", "agent")
        buyer = _ensure_user(db, buyer_email, "Buyer", "user")

        property_id: Optional[int] = None
        if create_sample_property:
            existing = db.scalar(
                select(Property).where(Property.agent_email == agent.email, Property.title == DEMO_LISTING_TITLE)
            )
            if existing is None:
                existing = create_property(
                    db,
                    principal=Principal(email=agent.email, role="agent"),
                    fields={
                        "title": DEMO_LISTING_TITLE,
                        "location": "Gulshan, Dhaka",
                        "agent_name": agent.name,
                        "min_price": 90_000,
                        "max_price": 150_000,
                        "bedrooms": 3,
                        "bathrooms": 2,
                        "facilities": "parking, gym, rooftop",
                    },
                )
            if existing.verification_status != "verified":
                existing = set_verification(
                    db,
                    principal=Principal(email=admin.email, role="admin"),
                    property_id=existing.id,
                    status="verified",
                )
            property_id = int(existing.id)

        return SeedResult(
            admin_email=admin.email,
            agent_email=agent.email,
            buyer_email=buyer.email,
            property_id=property_id,
        )
    finally:
        db.close()
