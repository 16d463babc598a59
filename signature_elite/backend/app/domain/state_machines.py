# backend/app/domain/state_machines.py
from __future__ import annotations

from .errors import Conflict, InvalidInput

# -----------------------------------------------------------------------------
# Listing verification
# -----------------------------------------------------------------------------
VERIFICATION_STATUSES = ("pending", "verified", "rejected")

VERIFICATION_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"verified", "rejected"}),
    "rejected": frozenset({"verified"}),
    "verified": frozenset(),
}

# -----------------------------------------------------------------------------
# Offers
# -----------------------------------------------------------------------------
OFFER_STATUSES = ("pending", "accepted", "rejected", "paid")

# older clients wrote "bought" for a completed purchase
OFFER_STATUS_ALIASES = {"bought": "paid"}

OFFER_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"accepted", "rejected"}),
    "accepted": frozenset({"paid"}),
    "rejected": frozenset(),
    "paid": frozenset(),
}

# states that occupy a property's exclusivity slot
ACTIVE_OFFER_STATUSES = ("accepted", "paid")


def normalize_verification_status(status: str | None) -> str:
    s = (status or "").strip().lower()
    if s not in VERIFICATION_STATUSES:
        raise InvalidInput(f"verification status must be one of {list(VERIFICATION_STATUSES)}")
    return s


def normalize_offer_status(status: str | None) -> str:
    s = (status or "").strip().lower()
    s = OFFER_STATUS_ALIASES.get(s, s)
    if s not in OFFER_STATUSES:
        raise InvalidInput(f"offer status must be one of {list(OFFER_STATUSES)}")
    return s


def ensure_verification_transition(current: str, target: str) -> None:
    if target not in VERIFICATION_TRANSITIONS.get(current, frozenset()):
        raise Conflict(f"listing cannot move from {current} to {target}")


def ensure_offer_transition(current: str, target: str) -> None:
    if target not in OFFER_TRANSITIONS.get(current, frozenset()):
        raise Conflict(f"offer cannot move from {current} to {target}")
