# backend/app/domain/policy.py
"""
Single authorization check for the engine.

Every operation names a capability; the capability declares which roles may
use it and whether the caller must also own the resource. Guests are callers
without a principal and only reach public capabilities.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .errors import Forbidden

if TYPE_CHECKING:
    from ..auth import Principal


ROLES = ("user", "agent", "admin")
ALL_ROLES = frozenset(ROLES)


@dataclass(frozen=True)
class Capability:
    name: str
    roles: frozenset[str] = frozenset()  # empty => public (guests allowed)
    owner_only: bool = False
    admin_bypass: bool = True  # admin skips the ownership predicate

    @property
    def public(self) -> bool:
        return not self.roles


def _cap(name: str, roles: tuple[str, ...] = (), **kw) -> Capability:
    return Capability(name=name, roles=frozenset(roles), **kw)


CAPABILITIES: dict[str, Capability] = {
    c.name: c
    for c in (
        # listings
        _cap("property.list_public"),
        _cap("property.create", ("agent",)),
        _cap("property.update", ("agent",), owner_only=True, admin_bypass=False),
        _cap("property.delete", ("agent", "admin"), owner_only=True),
        _cap("property.view_unverified", ("agent", "admin"), owner_only=True),
        _cap("property.list_mine", ("agent",)),
        _cap("property.list_all", ("admin",)),
        _cap("property.verify", ("admin",)),
        _cap("property.advertise", ("admin",)),
        # offers
        _cap("offer.submit", ("user",)),
        _cap("offer.decide", ("agent", "admin"), owner_only=True),
        _cap("offer.pay", ("user",), owner_only=True, admin_bypass=False),
        _cap("offer.confirm", ("user", "admin"), owner_only=True),
        _cap("offer.list_buyer", tuple(ROLES), owner_only=True),
        _cap("offer.list_agent", ("agent", "admin"), owner_only=True),
        # users
        _cap("user.read_role", tuple(ROLES), owner_only=True),
        _cap("user.manage", ("admin",)),
        # wishlist / reviews
        _cap("wishlist.write", ("user",)),
        _cap("review.create", ("user",)),
        _cap("review.delete", ("user", "admin"), owner_only=True),
        _cap("review.list_all", ("admin",)),
        # consistency
        _cap("consistency.audit", ("admin",)),
        _cap("audit.read", ("admin",)),
    )
}


def _same_email(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


def authorize(
    principal: Optional["Principal"],
    capability: str,
    *,
    owner_email: Optional[str] = None,
) -> None:
    """
    Raise Forbidden unless `principal` may exercise `capability`.

    `owner_email` is the resource owner's email and is required for
    capabilities declared owner_only.
    """
    cap = CAPABILITIES.get(capability)
    if cap is None:
        raise KeyError(f"unknown capability: {capability}")

    if cap.public:
        return

    if principal is None:
        raise Forbidden(f"{capability} requires an authenticated caller")

    if principal.role not in cap.roles:
        raise Forbidden(f"{capability} requires role in {sorted(cap.roles)}")

    if not cap.owner_only:
        return

    if cap.admin_bypass and principal.role == "admin":
        return

    if not _same_email(principal.email, owner_email):
        raise Forbidden(f"{capability} is limited to the resource owner")


def can(principal: Optional["Principal"], capability: str, *, owner_email: Optional[str] = None) -> bool:
    try:
        authorize(principal, capability, owner_email=owner_email)
    except Forbidden:
        return False
    return True
