from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from core.db import get_db, transaction
from models.product import Product
from models.review import Review
from models.user import User
from schemas.base import MessageOut
from schemas.review import ReviewCreate, ReviewOut, ReviewUpdate
from security.dependencies import get_current_user
from services.reviews import recompute_product_rating

router = APIRouter(prefix="/api/review", tags=["reviews"])


def _reviews_query(db: Session):
    return (
        db.query(Review)
        .options(selectinload(Review.user), selectinload(Review.product))
        .order_by(Review.created_at.desc(), Review.id.desc())
    )


def _get_own_review(db: Session, review_id: int, user: User) -> Review:
    review = db.get(Review, review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return review


@router.get("", response_model=List[ReviewOut])
def list_reviews(db: Session = Depends(get_db)):
    return _reviews_query(db).all()


@router.get("/product/{product_id}", response_model=List[ReviewOut])
def list_product_reviews(product_id: int, db: Session = Depends(get_db)):
    return _reviews_query(db).filter(Review.product_id == product_id).all()


@router.post("", response_model=ReviewOut, status_code=201)
def create_review(data: ReviewCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not db.get(Product, data.product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    with transaction(db):
        review = Review(user_id=user.id, product_id=data.product_id, rating=data.rating, comment=data.comment)
        db.add(review)
        recompute_product_rating(db, data.product_id)
    db.refresh(review)
    return review


@router.put("/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int, data: ReviewUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    review = _get_own_review(db, review_id, user)
    with transaction(db):
        review.rating = data.rating
        review.comment = data.comment
        recompute_product_rating(db, review.product_id)
    db.refresh(review)
    return review


@router.delete("/{review_id}", response_model=MessageOut)
def delete_review(review_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    review = _get_own_review(db, review_id, user)
    product_id = review.product_id
    with transaction(db):
        db.delete(review)
        recompute_product_rating(db, product_id)
    return MessageOut(message="Review deleted")
