# backend/tests/test_property_registry.py
from __future__ import annotations

import json

import pytest

from app.auth import Principal
from app.domain.errors import Conflict, Forbidden, InvalidInput, NotFound
from app.models import AuditEvent, Property
from app.services.property_registry import (
    create_property,
    delete_property,
    normalize_facilities,
    set_advertised,
    set_verification,
    update_property,
)


def test_create_starts_pending_and_unadvertised(db, actors):
    row = create_property(
        db,
        principal=actors.p_agent,
        fields={"title": "Villa", "location": "Banani", "min_price": "100", "max_price": 200, "facilities": "pool, gym"},
    )
    assert row.verification_status == "pending"
    assert row.advertised is False
    assert row.agent_email == "agent@t.local"
    assert row.min_price == 100.0
    assert row.bedrooms == 0
    assert row.facilities == ["pool", "gym"]


def test_create_rejects_unknown_non_agent_and_fraud(db, mk_user, actors):
    with pytest.raises(Forbidden):
        create_property(db, principal=Principal(email="ghost@t.local", role="agent"), fields={"title": "x", "location": "y"})

    # claim says agent but the stored user is a buyer
    with pytest.raises(Forbidden):
        create_property(db, principal=Principal(email=actors.buyer1.email, role="agent"), fields={"title": "x", "location": "y"})

    crook = mk_user("crook@t.local", "agent", is_fraud=True)
    with pytest.raises(Forbidden):
        create_property(db, principal=Principal(email=crook.email, role="agent"), fields={"title": "x", "location": "y"})

    with pytest.raises(Forbidden):
        create_property(db, principal=actors.p_buyer1, fields={"title": "x", "location": "y"})


def test_create_requires_title_and_location(db, actors):
    with pytest.raises(InvalidInput):
        create_property(db, principal=actors.p_agent, fields={"location": "Banani"})
    with pytest.raises(InvalidInput):
        create_property(db, principal=actors.p_agent, fields={"title": "Villa", "location": "   "})


def test_update_coerces_numbers_and_normalizes_facilities(db, actors, mk_listing):
    row = mk_listing(status="pending")

    out = update_property(
        db,
        principal=actors.p_agent,
        property_id=row.id,
        fields={"title": "Villa 2", "location": "Uttara", "max_price": "250000", "facilities": [" pool ", "", "pool", "lift"]},
    )
    assert out.title == "Villa 2"
    assert out.min_price == 0.0  # missing => 0
    assert out.max_price == 250_000.0
    assert out.bedrooms == 0
    assert out.facilities == ["pool", "lift"]
    assert out.verification_status == "pending"

    out = update_property(
        db,
        principal=actors.p_agent,
        property_id=row.id,
        fields={"title": "Villa 2", "location": "Uttara", "facilities": "garden ,  garage,,"},
    )
    assert json.loads(out.facilities_json) == ["garden", "garage"]


def test_update_rejects_bad_numbers(db, actors, mk_listing):
    row = mk_listing(status="pending")
    with pytest.raises(InvalidInput):
        update_property(db, principal=actors.p_agent, property_id=row.id, fields={"title": "a", "location": "b", "bedrooms": "many"})


def test_update_is_owner_only(db, actors, mk_user, mk_listing):
    row = mk_listing(status="pending")
    other = mk_user("other@t.local", "agent")

    with pytest.raises(Forbidden):
        update_property(db, principal=Principal(email=other.email, role="agent"), property_id=row.id, fields={"title": "a", "location": "b"})
    with pytest.raises(Forbidden):
        update_property(db, principal=actors.p_admin, property_id=row.id, fields={"title": "a", "location": "b"})
    with pytest.raises(NotFound):
        update_property(db, principal=actors.p_agent, property_id=9999, fields={"title": "a", "location": "b"})


def test_normalize_facilities_shapes():
    assert normalize_facilities(None) == []
    assert normalize_facilities("a, b ,a") == ["a", "b"]
    assert normalize_facilities(("x", " y ")) == ["x", "y"]
    with pytest.raises(InvalidInput):
        normalize_facilities(42)


def test_verification_transitions(db, actors, mk_listing):
    admin = actors.p_admin

    a = mk_listing(status="pending")
    assert set_verification(db, principal=admin, property_id=a.id, status="verified").verification_status == "verified"
    with pytest.raises(Conflict):
        set_verification(db, principal=admin, property_id=a.id, status="pending")
    with pytest.raises(Conflict):
        set_verification(db, principal=admin, property_id=a.id, status="rejected")

    b = mk_listing(status="pending")
    assert set_verification(db, principal=admin, property_id=b.id, status="rejected").verification_status == "rejected"
    with pytest.raises(Conflict):
        set_verification(db, principal=admin, property_id=b.id, status="pending")
    assert set_verification(db, principal=admin, property_id=b.id, status="verified").verification_status == "verified"

    with pytest.raises(InvalidInput):
        set_verification(db, principal=admin, property_id=b.id, status="approved")
    with pytest.raises(Forbidden):
        set_verification(db, principal=actors.p_agent, property_id=b.id, status="verified")

    actions = [e.action for e in db.query(AuditEvent).filter(AuditEvent.action == "property.verification").all()]
    assert len(actions) == 3


def test_advertise_requires_verified_and_is_idempotent(db, actors, mk_listing):
    pending = mk_listing(status="pending")
    with pytest.raises(Conflict):
        set_advertised(db, principal=actors.p_admin, property_id=pending.id)

    row = mk_listing()
    assert set_advertised(db, principal=actors.p_admin, property_id=row.id).advertised is True
    assert set_advertised(db, principal=actors.p_admin, property_id=row.id).advertised is True
    assert set_advertised(db, principal=actors.p_admin, property_id=row.id, advertised=False).advertised is False

    with pytest.raises(Forbidden):
        set_advertised(db, principal=actors.p_agent, property_id=row.id)


def test_advertise_blocked_for_fraud_agent(db, actors, mk_listing):
    row = mk_listing()
    actors.agent.is_fraud = True
    db.add(actors.agent)
    db.commit()

    with pytest.raises(Forbidden):
        set_advertised(db, principal=actors.p_admin, property_id=row.id)


def test_delete_by_owner_or_admin_only(db, actors, mk_user, mk_listing):
    a = mk_listing()
    b = mk_listing()

    with pytest.raises(Forbidden):
        delete_property(db, principal=actors.p_buyer1, property_id=a.id)
    other = mk_user("other@t.local", "agent")
    with pytest.raises(Forbidden):
        delete_property(db, principal=Principal(email=other.email, role="agent"), property_id=a.id)

    delete_property(db, principal=actors.p_agent, property_id=a.id)
    delete_property(db, principal=actors.p_admin, property_id=b.id)
    assert db.query(Property).count() == 0

    with pytest.raises(NotFound):
        delete_property(db, principal=actors.p_admin, property_id=a.id)
