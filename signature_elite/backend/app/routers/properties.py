# backend/app/routers/properties.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_optional_principal, get_principal
from ..db import get_db
from ..schemas import AdvertiseIn, PropertyFields, PropertyOut, VerificationIn
from ..services import property_registry as registry

router = APIRouter(prefix="/properties", tags=["properties"])


@router.post("", response_model=PropertyOut)
def create_property(payload: PropertyFields, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return registry.create_property(db, principal=p, fields=payload.model_dump(exclude_unset=True))


@router.get("", response_model=list[PropertyOut])
def list_verified_properties(
    search: Optional[str] = Query(default=None, description="case-insensitive substring of location"),
    sort: Optional[str] = Query(default=None, description="ascending|descending|none (asc/desc accepted)"),
    db: Session = Depends(get_db),
):
    return registry.list_public(db, search_text=search, sort_direction=sort)


@router.get("/advertised", response_model=list[PropertyOut])
def list_advertised(db: Session = Depends(get_db)):
    return registry.list_advertised(db)


@router.get("/mine", response_model=list[PropertyOut])
def list_my_properties(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return registry.list_for_agent(db, principal=p)


@router.get("/all", response_model=list[PropertyOut])
def list_all_properties(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return registry.list_all(db, principal=p)


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(
    property_id: int,
    db: Session = Depends(get_db),
    p: Optional[Principal] = Depends(get_optional_principal),
):
    return registry.get_property(db, property_id=property_id, principal=p)


@router.put("/{property_id}", response_model=PropertyOut)
def update_property(
    property_id: int,
    payload: PropertyFields,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return registry.update_property(db, principal=p, property_id=property_id, fields=payload.model_dump(exclude_unset=True))


@router.delete("/{property_id}")
def delete_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    registry.delete_property(db, principal=p, property_id=property_id)
    return {"ok": True}


@router.patch("/{property_id}/verification", response_model=PropertyOut)
def set_verification(
    property_id: int,
    payload: VerificationIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return registry.set_verification(db, principal=p, property_id=property_id, status=payload.status)


@router.patch("/{property_id}/advertise", response_model=PropertyOut)
def set_advertised(
    property_id: int,
    payload: AdvertiseIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return registry.set_advertised(db, principal=p, property_id=property_id, advertised=payload.advertised)
