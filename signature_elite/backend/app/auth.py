# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .domain.policy import ROLES
from .models import User


@dataclass(frozen=True)
class Principal:
    email: str
    role: str  # user | agent | admin


def _norm_email(email: Any) -> str:
    return str(email or "").strip().lower()


def decode_identity_token(token: str) -> dict[str, Any]:
    """
    Verify a bearer token issued by the identity provider and return its claims.
    Token issuance lives outside this service; only verification happens here.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    return dict(claims)


def resolve_principal(db: Session, *, email: str, claimed_role: Optional[str] = None) -> Principal:
    """
    The stored user record is authoritative for role; the claim's role is used
    only for callers that have not registered yet.
    """
    email = _norm_email(email)
    if not email:
        raise HTTPException(status_code=401, detail="Identity claim missing email")

    user = db.scalar(select(User).where(User.email == email))
    if user is not None:
        return Principal(email=email, role=str(user.role))

    role = (claimed_role or "user").strip().lower()
    if role not in ROLES:
        role = "user"
    return Principal(email=email, role=role)


def _claim_from_request(request: Request, authorization: Optional[str]) -> Optional[tuple[str, Optional[str]]]:
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()
        claims = decode_identity_token(token)
        return str(claims.get("email") or claims.get("sub") or ""), claims.get("role")

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_user_email) or "").strip()
        if email:
            return email, request.headers.get(settings.dev_header_user_role)

    return None


def get_optional_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[Principal]:
    """
    Identity sources (in priority order):
      1) Authorization: Bearer <jwt> carrying an `email` (or `sub`) claim
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    Returns None for guests.
    """
    claim = _claim_from_request(request, authorization)
    if claim is None:
        return None
    email, role = claim
    return resolve_principal(db, email=email, claimed_role=role)


def get_principal(p: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if p is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return p
