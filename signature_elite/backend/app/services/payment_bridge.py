# backend/app/services/payment_bridge.py
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ..clients.payment_gateway import (
    PaymentGatewayClient,
    PaymentGatewayError,
    PaymentIntent,
    StripePaymentClient,
    gateway_client_from_settings,
)
from ..domain.errors import InvalidInput, Unavailable

log = logging.getLogger(__name__)


def to_minor_units(amount_major_units: Any) -> int:
    """
    Major currency units -> integer cents, half-up rounding.
    Rejects anything that is not a positive finite number.
    """
    if amount_major_units is None or isinstance(amount_major_units, bool):
        raise InvalidInput("amount must be a positive number")
    try:
        amount = Decimal(str(amount_major_units).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput("amount must be a positive number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidInput("amount must be a positive number")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents <= 0:
        raise InvalidInput("amount is below the smallest chargeable unit")
    return cents


class PaymentBridge:
    """
    Thin adapter over the payment gateway. Holds no state: the offer ledger is
    the system of record for whether a payment completed.
    """

    def __init__(self, client: Optional[PaymentGatewayClient | StripePaymentClient] = None) -> None:
        self.client = client or gateway_client_from_settings()

    def create_intent(self, amount_major_units: Any, *, metadata: Optional[dict[str, Any]] = None) -> PaymentIntent:
        cents = to_minor_units(amount_major_units)
        try:
            intent = self.client.create_payment_intent(amount_cents=cents, metadata=metadata)
        except PaymentGatewayError as e:
            log.warning("payment gateway unavailable: %s", e)
            raise Unavailable("payment gateway unavailable, retry later") from e

        log.info("payment intent created", extra={"offer_id": (metadata or {}).get("offer_id")})
        return intent


def get_payment_bridge() -> PaymentBridge:
    return PaymentBridge()
