# backend/app/routers/wishlist.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import WishlistAddIn, WishlistItemOut
from ..services import wishlist_index

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.post("", response_model=WishlistItemOut)
def add_to_wishlist(payload: WishlistAddIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return wishlist_index.add(db, principal=p, property_id=payload.property_id, snapshot=payload.snapshot)


@router.get("", response_model=list[WishlistItemOut])
def list_wishlist(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return wishlist_index.list_for_user(db, principal=p)


@router.delete("/{property_id}")
def remove_from_wishlist(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    wishlist_index.remove(db, principal=p, property_id=property_id)
    return {"ok": True}
