# backend/app/routers/reviews.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import ReviewCreate, ReviewOut
from ..services import reviews_service

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewOut)
def add_review(payload: ReviewCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return reviews_service.add_review(
        db, principal=p, property_id=payload.property_id, rating=payload.rating, comment=payload.comment
    )


@router.get("", response_model=list[ReviewOut])
def list_all_reviews(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return reviews_service.list_all(db, principal=p)


@router.get("/mine", response_model=list[ReviewOut])
def list_my_reviews(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return reviews_service.list_for_user(db, principal=p)


@router.get("/property/{property_id}", response_model=list[ReviewOut])
def list_property_reviews(property_id: int, db: Session = Depends(get_db)):
    return reviews_service.list_for_property(db, property_id=property_id)


@router.delete("/{review_id}")
def delete_review(review_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    reviews_service.delete_review(db, principal=p, review_id=review_id)
    return {"ok": True}
