# backend/app/routers/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.errors import Forbidden
from ..schemas import FraudIn, FraudOut, RoleIn, RoleOut, UserOut, UserRegisterIn, UserRegisterOut
from ..services import users_service
from ..services.trust_enforcer import set_fraud_flag

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRegisterOut)
def register_user_if_absent(
    payload: UserRegisterIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """
    Called by the client right after sign-in. Idempotent: the second call
    returns the stored user with created=false.
    """
    if payload.email and payload.email.strip().lower() != p.email:
        raise Forbidden("can only register the signed-in identity")
    user, created = users_service.register_user_if_absent(
        db, email=p.email, name=payload.name, photo_url=payload.photo_url
    )
    return UserRegisterOut(user=UserOut.model_validate(user), created=created)


@router.get("", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return users_service.list_users(db, principal=p)


@router.get("/role", response_model=RoleOut)
def get_user_role(
    email: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    target = (email or p.email).strip().lower()
    return RoleOut(email=target, role=users_service.get_user_role(db, principal=p, email=target))


@router.patch("/{user_id}/role", response_model=UserOut)
def set_user_role(user_id: int, payload: RoleIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return users_service.set_user_role(db, principal=p, user_id=user_id, role=payload.role)


@router.patch("/{user_id}/fraud", response_model=FraudOut)
def set_user_fraud(user_id: int, payload: FraudIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    res = set_fraud_flag(db, principal=p, user_id=user_id, is_fraud=payload.is_fraud)
    return FraudOut(
        user=UserOut.model_validate(res.user),
        listings_removed=res.listings_removed,
        cascade_complete=res.cascade_complete,
    )
