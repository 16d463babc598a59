# backend/app/services/users_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.errors import InvalidInput, NotFound
from ..domain.policy import ROLES, authorize
from ..models import User
from .ownership import get_user_by_email, must_get_user

log = logging.getLogger(__name__)


def _norm_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def register_user_if_absent(
    db: Session,
    *,
    email: str,
    name: Optional[str] = None,
    photo_url: Optional[str] = None,
) -> tuple[User, bool]:
    """
    Create the user on first sign-in. Re-registration is a no-op that returns
    the stored row unchanged. Returns (user, created).
    """
    email = _norm_email(email)
    if not email:
        raise InvalidInput("email is required")

    existing = get_user_by_email(db, email=email)
    if existing:
        return existing, False

    row = User(email=email, name=name, photo_url=photo_url, role="user", is_fraud=False, created_at=datetime.utcnow())
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # concurrent first sign-in won the insert
        db.rollback()
        existing = get_user_by_email(db, email=email)
        if existing is None:
            raise
        return existing, False

    db.refresh(row)
    log.info("user registered", extra={"user_email": email})
    return row, True


def get_user_role(db: Session, *, principal: Principal, email: str) -> str:
    authorize(principal, "user.read_role", owner_email=email)
    row = get_user_by_email(db, email=email)
    if row is None:
        raise NotFound("user not found")
    return str(row.role)


def set_user_role(db: Session, *, principal: Principal, user_id: int, role: str) -> User:
    authorize(principal, "user.manage")

    role = (role or "").strip().lower()
    if role not in ROLES:
        raise InvalidInput(f"role must be one of {list(ROLES)}")

    row = must_get_user(db, user_id=user_id)
    before = {"role": row.role}
    row.role = role
    db.add(row)
    audit_write(
        db,
        actor_email=principal.email,
        action="user.role",
        entity_type="User",
        entity_id=row.id,
        before=before,
        after={"role": role},
    )
    db.commit()
    db.refresh(row)

    log.info("user role changed", extra={"user_email": row.email, "user_id": row.id})
    return row


def list_users(db: Session, *, principal: Principal) -> list[User]:
    authorize(principal, "user.manage")
    return list(db.scalars(select(User).order_by(User.id)).all())
