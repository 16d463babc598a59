# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# -------------------- Users --------------------

class UserRegisterIn(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    photo_url: Optional[str] = None


class UserOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    photo_url: Optional[str] = None
    role: str
    is_fraud: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class UserRegisterOut(BaseModel):
    user: UserOut
    created: bool


class RoleOut(BaseModel):
    email: str
    role: str


class RoleIn(BaseModel):
    role: str


class FraudIn(BaseModel):
    is_fraud: bool = True


class FraudOut(BaseModel):
    user: UserOut
    listings_removed: int
    cascade_complete: bool


# -------------------- Properties --------------------

class PropertyFields(BaseModel):
    # numeric fields stay loose: the registry coerces (missing => 0)
    title: Optional[str] = None
    location: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    agent_name: Optional[str] = None
    min_price: Optional[Union[float, str]] = None
    max_price: Optional[Union[float, str]] = None
    bedrooms: Optional[Union[int, float, str]] = None
    bathrooms: Optional[Union[float, str]] = None
    facilities: Optional[Union[str, list[str]]] = None


class PropertyOut(BaseModel):
    id: int
    agent_email: str
    agent_name: Optional[str] = None
    title: str
    location: str
    image: Optional[str] = None
    description: Optional[str] = None
    min_price: float
    max_price: float
    bedrooms: int
    bathrooms: float
    facilities: list[str] = Field(default_factory=list)
    verification_status: str
    advertised: bool
    accepted_offer_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class VerificationIn(BaseModel):
    status: str


class AdvertiseIn(BaseModel):
    advertised: bool = True


# -------------------- Offers --------------------

class OfferCreate(BaseModel):
    property_id: Optional[int] = None
    offer_amount: Optional[float] = None
    buyer_name: Optional[str] = None
    buying_date: Optional[str] = None


class OfferOut(BaseModel):
    id: int
    property_id: int
    property_title: Optional[str] = None
    property_location: Optional[str] = None
    property_image: Optional[str] = None
    agent_email: str
    agent_name: Optional[str] = None
    buyer_email: str
    buyer_name: Optional[str] = None
    offer_amount: float
    buying_date: Optional[str] = None
    status: str
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class DecisionIn(BaseModel):
    decision: str


class PaymentIntentIn(BaseModel):
    amount: Optional[float] = None


class PaymentIntentOut(BaseModel):
    offer_id: int
    client_secret: str
    intent_id: Optional[str] = None
    amount_cents: int
    currency: str


class ConfirmPaymentIn(BaseModel):
    transaction_id: Optional[str] = None


class SalesSummaryOut(BaseModel):
    agent_email: str
    sold_count: int
    total_sold_amount: float


# -------------------- Wishlist --------------------

class WishlistAddIn(BaseModel):
    property_id: int
    snapshot: Optional[dict[str, Any]] = None


class WishlistItemOut(BaseModel):
    id: int
    user_email: str
    property_id: int
    title: Optional[str] = None
    location: Optional[str] = None
    image: Optional[str] = None
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    verification_status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Reviews --------------------

class ReviewCreate(BaseModel):
    property_id: int
    rating: int
    comment: Optional[str] = None


class ReviewOut(BaseModel):
    id: int
    property_id: int
    property_title: Optional[str] = None
    agent_name: Optional[str] = None
    user_email: str
    user_name: Optional[str] = None
    user_photo: Optional[str] = None
    rating: int
    comment: str
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Consistency --------------------

class ExclusivityViolationOut(BaseModel):
    property_id: int
    offer_ids: list[int]
    model_config = ConfigDict(from_attributes=True)


class FraudResidueOut(BaseModel):
    agent_email: str
    listing_count: int
    model_config = ConfigDict(from_attributes=True)


class ConsistencyReportOut(BaseModel):
    ok: bool
    exclusivity_violations: list[ExclusivityViolationOut] = Field(default_factory=list)
    fraud_residue: list[FraudResidueOut] = Field(default_factory=list)
    listings_removed: int = 0
    reconcile_errors: list[str] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


# -------------------- Audit --------------------

class AuditEventOut(BaseModel):
    id: int
    actor_email: Optional[str] = None
    action: str
    entity_type: str
    entity_id: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
