import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from core.db import get_db, transaction
from models.offer import Offer
from models.product import Product
from models.user import User
from schemas.base import MessageOut
from schemas.offer import OfferCreate, OfferOut, OfferPage, OfferRespond, OfferUpdate
from security.dependencies import get_current_user
from services import notifications
from utils.pagination import build_pagination_response, get_pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/offer", tags=["offers"])


def _offers_query(db: Session):
    return db.query(Offer).options(selectinload(Offer.product), selectinload(Offer.user))


def _get_offer(db: Session, offer_id: int) -> Offer:
    offer = _offers_query(db).filter(Offer.id == offer_id).one_or_none()
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found.")
    return offer


@router.post("", response_model=OfferOut, status_code=201)
def create_offer(data: OfferCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with transaction(db):
        product = Product(
            name=data.product.name,
            category=data.product.category,
            description=data.product.description,
            base_price=data.product.base_price,
        )
        db.add(product)
        db.flush()
        offer = Offer(user_id=user.id, product_id=product.id, title=data.title, description=data.description)
        db.add(offer)
    db.refresh(offer)
    logger.info("User %s created offer %s", user.id, offer.id)
    return offer


@router.get("/all", response_model=OfferPage)
def list_offers(
    page: str | None = Query(default=None),
    page_size: str | None = Query(default=None, alias="pageSize"),
    limit: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    params = get_pagination_params(page=page, page_size=page_size, limit=limit)
    total = db.query(Offer).count()
    items = (
        _offers_query(db)
        .order_by(Offer.created_at.desc(), Offer.id.desc())
        .offset(params.offset)
        .limit(params.limit)
        .all()
    )
    return build_pagination_response(items, params, total)


@router.get("/my", response_model=list[OfferOut])
def my_offers(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _offers_query(db).filter(Offer.user_id == user.id).order_by(Offer.created_at.desc(), Offer.id.desc()).all()


@router.get("/{offer_id}", response_model=OfferOut)
def get_offer(offer_id: int, db: Session = Depends(get_db)):
    return _get_offer(db, offer_id)


@router.post("/{offer_id}/respond", response_model=MessageOut)
def respond_to_offer(offer_id: int, data: OfferRespond, db: Session = Depends(get_db)):
    offer = _get_offer(db, offer_id)
    if not offer.user or not offer.user.email:
        raise HTTPException(status_code=404, detail="Offer not found.")
    if not notifications.notify_offer_response(offer, data.email, data.message):
        raise HTTPException(status_code=500, detail="Unable to send offer response.")
    return MessageOut(message="Offer response sent.")


@router.put("/{offer_id}", response_model=OfferOut)
def update_offer(
    offer_id: int, data: OfferUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    offer = _get_offer(db, offer_id)
    if offer.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this offer.")

    with transaction(db):
        if data.title is not None:
            offer.title = data.title
        if data.description is not None:
            offer.description = data.description
        if data.product is not None:
            for field, value in data.product.model_dump(exclude_unset=True).items():
                setattr(offer.product, field, value)
    db.refresh(offer)
    return offer


@router.delete("/{offer_id}", response_model=MessageOut)
def delete_offer(offer_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    offer = _get_offer(db, offer_id)
    if offer.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to delete this offer.")

    product = offer.product
    with transaction(db):
        db.delete(offer)
        db.flush()
        if product is not None:
            db.delete(product)
    logger.info("User %s deleted offer %s", user.id, offer_id)
    return MessageOut(message="Offer deleted successfully.")
