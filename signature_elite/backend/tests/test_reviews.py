# backend/tests/test_reviews.py
from __future__ import annotations

import pytest

from app.domain.errors import Forbidden, InvalidInput, NotFound
from app.models import AuditEvent
from app.services import reviews_service


def test_add_review_copies_listing_and_author(db, actors, mk_listing):
    prop = mk_listing(title="Riverside")
    actors.buyer1.photo_url = "https://img.example/b1.png"
    db.add(actors.buyer1)
    db.commit()

    row = reviews_service.add_review(db, principal=actors.p_buyer1, property_id=prop.id, rating="5", comment="  great  ")
    assert row.rating == 5
    assert row.comment == "great"
    assert row.property_title == "Riverside"
    assert row.user_name == "b1"
    assert row.user_photo == "https://img.example/b1.png"


@pytest.mark.parametrize("rating", [0, 6, "x", None])
def test_rating_must_be_one_to_five(db, actors, mk_listing, rating):
    prop = mk_listing()
    with pytest.raises(InvalidInput):
        reviews_service.add_review(db, principal=actors.p_buyer1, property_id=prop.id, rating=rating)


def test_listing_and_deleting(db, actors, mk_listing):
    prop = mk_listing()
    r1 = reviews_service.add_review(db, principal=actors.p_buyer1, property_id=prop.id, rating=4)
    r2 = reviews_service.add_review(db, principal=actors.p_buyer2, property_id=prop.id, rating=3)

    assert {r.id for r in reviews_service.list_for_property(db, property_id=prop.id)} == {r1.id, r2.id}
    assert [r.id for r in reviews_service.list_for_user(db, principal=actors.p_buyer1)] == [r1.id]
    assert [r.id for r in reviews_service.list_all(db, principal=actors.p_admin)] == [r2.id, r1.id]
    with pytest.raises(Forbidden):
        reviews_service.list_all(db, principal=actors.p_buyer1)

    with pytest.raises(Forbidden):
        reviews_service.delete_review(db, principal=actors.p_buyer2, review_id=r1.id)
    reviews_service.delete_review(db, principal=actors.p_buyer1, review_id=r1.id)
    reviews_service.delete_review(db, principal=actors.p_admin, review_id=r2.id)
    assert reviews_service.list_for_property(db, property_id=prop.id) == []
    assert db.query(AuditEvent).filter(AuditEvent.action == "review.delete").count() == 2

    with pytest.raises(NotFound):
        reviews_service.delete_review(db, principal=actors.p_admin, review_id=r1.id)


def test_agents_cannot_review(db, actors, mk_listing):
    prop = mk_listing()
    with pytest.raises(Forbidden):
        reviews_service.add_review(db, principal=actors.p_agent, property_id=prop.id, rating=5)
    with pytest.raises(NotFound):
        reviews_service.add_review(db, principal=actors.p_buyer1, property_id=12345, rating=5)


def test_unverified_listings_cannot_be_reviewed(db, actors, mk_listing):
    prop = mk_listing(status="pending")
    with pytest.raises(NotFound):
        reviews_service.add_review(db, principal=actors.p_buyer1, property_id=prop.id, rating=5)
