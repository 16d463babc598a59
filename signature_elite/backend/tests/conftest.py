# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass

# settings are read at import time: point them at a throwaway database first
_TMP_DIR = tempfile.mkdtemp(prefix="signature_elite_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["AUTH_MODE"] = "dev"
os.environ["APP_ENV"] = "local"
os.environ["PAYMENT_GATEWAY_SECRET_KEY"] = "sk_test_dummy"
os.environ["JWT_SECRET"] = "test-secret-0123456789abcdef0123456789abcdef"

import pytest  # noqa: E402

from app import models  # noqa: E402,F401
from app.auth import Principal  # noqa: E402
from app.db import Base, SessionLocal, engine  # noqa: E402
from app.models import User  # noqa: E402
from app.services.property_registry import create_property, set_verification  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def as_principal(user: User) -> Principal:
    return Principal(email=user.email, role=user.role)


@pytest.fixture
def mk_user(db):
    def _mk(email: str, role: str = "user", *, is_fraud: bool = False, name: str | None = None) -> User:
        u = User(email=email.lower(), name=name or email.split("@")[0], role=role, is_fraud=is_fraud)
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _mk


@dataclass
class Actors:
    admin: User
    agent: User
    buyer1: User
    buyer2: User

    @property
    def p_admin(self) -> Principal:
        return as_principal(self.admin)

    @property
    def p_agent(self) -> Principal:
        return as_principal(self.agent)

    @property
    def p_buyer1(self) -> Principal:
        return as_principal(self.buyer1)

    @property
    def p_buyer2(self) -> Principal:
        return as_principal(self.buyer2)


@pytest.fixture
def actors(mk_user) -> Actors:
    return Actors(
        admin=mk_user("admin@t.local", "admin"),
        agent=mk_user("agent@t.local", "agent", name="Agent A"),
        buyer1=mk_user("b1@t.local", "user"),
        buyer2=mk_user("b2@t.local", "user"),
    )


@pytest.fixture
def mk_listing(db, actors):
    def _mk(
        *,
        title: str = "Lake House",
        location: str = "Gulshan, Dhaka",
        min_price: float = 90_000,
        max_price: float = 150_000,
        status: str = "verified",
        agent: Principal | None = None,
    ):
        row = create_property(
            db,
            principal=agent or actors.p_agent,
            fields={"title": title, "location": location, "min_price": min_price, "max_price": max_price},
        )
        if status != "pending":
            row = set_verification(db, principal=actors.p_admin, property_id=row.id, status=status)
        return row

    return _mk
