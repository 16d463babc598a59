from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import stripe

from ..config import settings


class PaymentGatewayError(Exception):
    """Transport failure, non-2xx answer or unusable body from the gateway."""


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: Optional[str]
    client_secret: str
    amount_cents: int
    currency: str
    raw: dict[str, Any]


class PaymentGatewayClient:
    """
    Stripe-compatible payment intent endpoint (form-encoded POST, bearer secret key).
    Only intent creation is used; the buyer's client completes the charge and
    reports the resulting transaction id back to the offer ledger.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        secret_key: Optional[str] = None,
        currency: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.payment_gateway_base_url).rstrip("/")
        self.secret_key = secret_key if secret_key is not None else settings.payment_gateway_secret_key
        self.currency = (currency or settings.payment_currency).lower()
        self.timeout = float(timeout if timeout is not None else settings.payment_timeout_seconds)
        self.transport = transport

    def enabled(self) -> bool:
        return bool(self.secret_key)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.secret_key}"}

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> PaymentIntent:
        if not self.secret_key:
            raise PaymentGatewayError("payment_gateway_secret_key not set")

        cur = (currency or self.currency).lower()
        url = f"{self.base}/payment_intents"
        form: dict[str, str] = {
            "amount": str(int(amount_cents)),
            "currency": cur,
            "payment_method_types[]": "card",
        }
        for k, v in (metadata or {}).items():
            form[f"metadata[{k}]"] = str(v)

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.post(url, data=form, headers=self._headers())
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentGatewayError(f"{type(e).__name__}: {e}") from e

        secret = data.get("client_secret") if isinstance(data, dict) else None
        if not secret:
            raise PaymentGatewayError("gateway response missing client_secret")

        return PaymentIntent(
            intent_id=data.get("id"),
            client_secret=str(secret),
            amount_cents=int(amount_cents),
            currency=cur,
            raw=data,
        )


class StripePaymentClient:
    """Same contract as PaymentGatewayClient, through the official stripe SDK."""

    def __init__(self, *, secret_key: Optional[str] = None, currency: Optional[str] = None) -> None:
        self.secret_key = secret_key if secret_key is not None else settings.payment_gateway_secret_key
        self.currency = (currency or settings.payment_currency).lower()

    def enabled(self) -> bool:
        return bool(self.secret_key)

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> PaymentIntent:
        if not self.secret_key:
            raise PaymentGatewayError("payment_gateway_secret_key not set")

        cur = (currency or self.currency).lower()
        try:
            intent = stripe.PaymentIntent.create(
                amount=int(amount_cents),
                currency=cur,
                payment_method_types=["card"],
                metadata={k: str(v) for k, v in (metadata or {}).items()},
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(f"{type(e).__name__}: {e}") from e

        secret = getattr(intent, "client_secret", None)
        if not secret:
            raise PaymentGatewayError("gateway response missing client_secret")

        intent_id = getattr(intent, "id", None)
        return PaymentIntent(
            intent_id=intent_id,
            client_secret=str(secret),
            amount_cents=int(amount_cents),
            currency=cur,
            raw={"id": intent_id, "status": getattr(intent, "status", None)},
        )


def gateway_client_from_settings():
    """`stripe` uses the SDK; `http` posts to any Stripe-compatible base URL."""
    provider = (settings.payment_gateway_provider or "stripe").strip().lower()
    if provider == "stripe":
        return StripePaymentClient()
    if provider == "http":
        return PaymentGatewayClient()
    raise ValueError(f"unknown payment_gateway_provider: {provider!r}")
