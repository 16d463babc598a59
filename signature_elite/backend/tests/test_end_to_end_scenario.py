# backend/tests/test_end_to_end_scenario.py
from __future__ import annotations

import httpx
import pytest

from app.clients.payment_gateway import PaymentGatewayClient
from app.domain.errors import Conflict
from app.models import AuditEvent
from app.services.offer_ledger import confirm_payment, decide_offer, request_payment, submit_offer
from app.services.payment_bridge import PaymentBridge
from app.services.property_registry import create_property, list_public, set_verification


def test_listing_to_paid_offer(db, actors):
    # agent lists, admin verifies
    p = create_property(
        db,
        principal=actors.p_agent,
        fields={"title": "Lake View", "location": "Gulshan, Dhaka", "min_price": 90_000, "max_price": 150_000},
    )
    assert p.verification_status == "pending"
    assert list_public(db) == []

    set_verification(db, principal=actors.p_admin, property_id=p.id, status="verified")
    assert [r.id for r in list_public(db)] == [p.id]

    # two buyers bid
    o1 = submit_offer(db, principal=actors.p_buyer1, property_id=p.id, offer_amount=100_000)
    o2 = submit_offer(db, principal=actors.p_buyer2, property_id=p.id, offer_amount=110_000)

    # agent takes the higher one
    decide_offer(db, principal=actors.p_agent, offer_id=o2.id, decision="accepted")
    db.refresh(o1)
    db.refresh(o2)
    assert o1.status == "rejected"
    assert o2.status == "accepted"

    # buyer pays through the gateway
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "pi_e2e", "client_secret": "pi_e2e_secret"})

    bridge = PaymentBridge(
        client=PaymentGatewayClient(secret_key="sk_test", transport=httpx.MockTransport(handler))
    )
    intent = request_payment(db, principal=actors.p_buyer2, offer_id=o2.id, bridge=bridge)
    assert intent.amount_cents == 11_000_000
    assert intent.client_secret == "pi_e2e_secret"

    paid = confirm_payment(db, principal=actors.p_buyer2, offer_id=o2.id, transaction_id="tx1")
    assert paid.status == "paid"
    assert paid.transaction_id == "tx1"

    assert confirm_payment(db, principal=actors.p_buyer2, offer_id=o2.id, transaction_id="tx1").status == "paid"
    with pytest.raises(Conflict):
        confirm_payment(db, principal=actors.p_buyer2, offer_id=o2.id, transaction_id="tx2")

    actions = [e.action for e in db.query(AuditEvent).order_by(AuditEvent.id).all()]
    assert actions == [
        "property.create",
        "property.verification",
        "offer.submit",
        "offer.submit",
        "offer.accept",
        "offer.paid",
    ]
