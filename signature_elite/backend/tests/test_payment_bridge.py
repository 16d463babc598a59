# backend/tests/test_payment_bridge.py
from __future__ import annotations

import json
from types import SimpleNamespace
from urllib.parse import parse_qs

import httpx
import pytest
import stripe

from app.clients.payment_gateway import PaymentGatewayClient, StripePaymentClient, gateway_client_from_settings
from app.config import settings
from app.domain.errors import InvalidInput, Unavailable
from app.services.payment_bridge import PaymentBridge, to_minor_units


def _client(handler, *, secret_key: str = "sk_test_123") -> PaymentGatewayClient:
    return PaymentGatewayClient(
        base_url="https://gateway.test/v1/",
        secret_key=secret_key,
        currency="USD",
        timeout=2,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize(
    "amount,cents",
    [
        (100_000, 10_000_000),
        ("19.99", 1999),
        (10.005, 1001),
        (1.234, 123),
        (0.005, 1),
    ],
)
def test_to_minor_units_rounds_half_up(amount, cents):
    assert to_minor_units(amount) == cents


@pytest.mark.parametrize("amount", [None, True, 0, -1, "abc", "", float("nan"), float("inf"), 0.004])
def test_to_minor_units_rejects_non_positive_or_garbage(amount):
    with pytest.raises(InvalidInput):
        to_minor_units(amount)


def test_create_intent_posts_form_and_returns_secret():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"id": "pi_123", "client_secret": "pi_123_secret_abc"})

    bridge = PaymentBridge(client=_client(handler))
    intent = bridge.create_intent(1500.5, metadata={"offer_id": 7})

    assert intent.client_secret == "pi_123_secret_abc"
    assert intent.intent_id == "pi_123"
    assert intent.amount_cents == 150_050
    assert intent.currency == "usd"

    assert seen["url"] == "https://gateway.test/v1/payment_intents"
    assert seen["auth"] == "Bearer sk_test_123"
    assert seen["form"]["amount"] == ["150050"]
    assert seen["form"]["currency"] == ["usd"]
    assert seen["form"]["payment_method_types[]"] == ["card"]
    assert seen["form"]["metadata[offer_id]"] == ["7"]


def test_gateway_error_status_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": {"message": "boom"}})

    with pytest.raises(Unavailable) as ei:
        PaymentBridge(client=_client(handler)).create_intent(10)
    assert ei.value.status_code == 503
    assert ei.value.headers["Retry-After"]


def test_transport_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(Unavailable):
        PaymentBridge(client=_client(handler)).create_intent(10)


def test_missing_secret_key_is_unavailable_without_a_call():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"client_secret": "x"})

    with pytest.raises(Unavailable):
        PaymentBridge(client=_client(handler, secret_key="")).create_intent(10)
    assert calls == []


@pytest.mark.parametrize("body", [{"id": "pi_1"}, ["not", "an", "object"], "not json"])
def test_unusable_body_is_unavailable(body):
    def handler(request: httpx.Request) -> httpx.Response:
        if isinstance(body, str):
            return httpx.Response(200, content=body.encode())
        return httpx.Response(200, content=json.dumps(body).encode())

    with pytest.raises(Unavailable):
        PaymentBridge(client=_client(handler)).create_intent(10)


def test_invalid_amount_never_reaches_gateway():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"client_secret": "x"})

    with pytest.raises(InvalidInput):
        PaymentBridge(client=_client(handler)).create_intent(-3)
    assert calls == []


def test_stripe_sdk_client_creates_intent(monkeypatch):
    seen = {}

    def _create(**kw):
        seen.update(kw)
        return SimpleNamespace(id="pi_9", client_secret="pi_9_secret", status="requires_payment_method")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)

    client = StripePaymentClient(secret_key="sk_test_sdk", currency="USD")
    intent = PaymentBridge(client=client).create_intent("250.10", metadata={"offer_id": 3})

    assert intent.intent_id == "pi_9"
    assert intent.client_secret == "pi_9_secret"
    assert intent.amount_cents == 25_010
    assert seen == {
        "amount": 25_010,
        "currency": "usd",
        "payment_method_types": ["card"],
        "metadata": {"offer_id": "3"},
        "api_key": "sk_test_sdk",
    }


def test_stripe_sdk_errors_are_unavailable(monkeypatch):
    def _create(**kw):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)

    with pytest.raises(Unavailable):
        PaymentBridge(client=StripePaymentClient(secret_key="sk_test_sdk")).create_intent(10)
    with pytest.raises(Unavailable):
        PaymentBridge(client=StripePaymentClient(secret_key="")).create_intent(10)


def test_provider_setting_picks_the_client(monkeypatch):
    monkeypatch.setattr(settings, "payment_gateway_provider", "stripe")
    assert isinstance(gateway_client_from_settings(), StripePaymentClient)
    monkeypatch.setattr(settings, "payment_gateway_provider", "HTTP")
    assert isinstance(gateway_client_from_settings(), PaymentGatewayClient)
    monkeypatch.setattr(settings, "payment_gateway_provider", "carrier-pigeon")
    with pytest.raises(ValueError):
        gateway_client_from_settings()
