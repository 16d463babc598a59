# backend/app/routers/offers.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import (
    ConfirmPaymentIn,
    DecisionIn,
    OfferCreate,
    OfferOut,
    PaymentIntentIn,
    PaymentIntentOut,
    SalesSummaryOut,
)
from ..services import offer_ledger as ledger
from ..services.payment_bridge import PaymentBridge, get_payment_bridge

router = APIRouter(prefix="/offers", tags=["offers"])


@router.post("", response_model=OfferOut)
def submit_offer(payload: OfferCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return ledger.submit_offer(
        db,
        principal=p,
        property_id=payload.property_id,
        offer_amount=payload.offer_amount,
        buyer_name=payload.buyer_name,
        buying_date=payload.buying_date,
    )


@router.get("/buyer", response_model=list[OfferOut])
def list_buyer_offers(
    email: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return ledger.list_for_buyer(db, principal=p, buyer_email=email)


@router.get("/agent", response_model=list[OfferOut])
def list_agent_offers(
    email: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return ledger.list_for_agent(db, principal=p, agent_email=email, status=status)


@router.get("/agent/sold", response_model=list[OfferOut])
def list_sold(
    email: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return ledger.list_sold_for_agent(db, principal=p, agent_email=email)


@router.get("/agent/summary", response_model=SalesSummaryOut)
def sales_summary(
    email: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    s = ledger.agent_sales_summary(db, principal=p, agent_email=email)
    return SalesSummaryOut(agent_email=s.agent_email, sold_count=s.sold_count, total_sold_amount=s.total_sold_amount)


@router.patch("/{offer_id}/decision", response_model=OfferOut)
def decide_offer(
    offer_id: int,
    payload: DecisionIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return ledger.decide_offer(db, principal=p, offer_id=offer_id, decision=payload.decision)


@router.post("/{offer_id}/payment-intent", response_model=PaymentIntentOut)
def create_payment_intent(
    offer_id: int,
    payload: PaymentIntentIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    bridge: PaymentBridge = Depends(get_payment_bridge),
):
    intent = ledger.request_payment(db, principal=p, offer_id=offer_id, bridge=bridge, amount=payload.amount)
    return PaymentIntentOut(
        offer_id=offer_id,
        client_secret=intent.client_secret,
        intent_id=intent.intent_id,
        amount_cents=intent.amount_cents,
        currency=intent.currency,
    )


@router.post("/{offer_id}/confirm-payment", response_model=OfferOut)
def confirm_payment(
    offer_id: int,
    payload: ConfirmPaymentIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return ledger.confirm_payment(db, principal=p, offer_id=offer_id, transaction_id=payload.transaction_id)
