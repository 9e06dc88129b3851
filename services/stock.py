import logging
from typing import Type, Union

from sqlalchemy import update
from sqlalchemy.orm import Session

from models.enums import OrderType
from models.event_product import EventProduct
from models.farm import Farm
from models.farm_product import FarmProduct
from models.order import Order
from models.order_item import OrderItem
from services.errors import InsufficientStockError

logger = logging.getLogger(__name__)

Listing = Union[FarmProduct, EventProduct]


def decrement_stock(db: Session, model: Type[Listing], listing_id: int, quantity: int) -> None:
    """Take ``quantity`` units from a listing in a single conditional UPDATE.

    Concurrent writers cannot drive stock below zero: a row that no longer
    holds enough stock is simply not matched, which surfaces as
    ``InsufficientStockError``.
    """
    result = db.execute(
        update(model)
        .where(model.id == listing_id, model.stock >= quantity)
        .values(stock=model.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStockError(listing_id=listing_id, requested=quantity)


def increment_stock(db: Session, model: Type[Listing], listing_id: int, quantity: int) -> None:
    db.execute(
        update(model)
        .where(model.id == listing_id)
        .values(stock=model.stock + quantity)
        .execution_options(synchronize_session=False)
    )


def find_farm_listing(db: Session, product_id: int, farmer_id: int | None = None) -> FarmProduct | None:
    query = db.query(FarmProduct).filter(FarmProduct.product_id == product_id)
    if farmer_id is not None:
        query = query.join(Farm, Farm.id == FarmProduct.farm_id).filter(Farm.farmer_id == farmer_id)
    return query.order_by(FarmProduct.id).first()


def find_event_listing(db: Session, event_id: int, product_id: int) -> EventProduct | None:
    return (
        db.query(EventProduct)
        .filter(EventProduct.event_id == event_id, EventProduct.product_id == product_id)
        .one_or_none()
    )


def listing_for_item(db: Session, order: Order, item: OrderItem) -> Listing | None:
    """Resolve the listing an order item was sold from."""
    if item.product_id is None:
        return None
    if order.order_type == OrderType.PREORDER:
        if order.event_id is None:
            return None
        return find_event_listing(db, order.event_id, item.product_id)
    if item.farm_product_id is not None:
        listing = db.get(FarmProduct, item.farm_product_id)
        if listing is not None:
            return listing
    if item.farmer_id is None:
        return None
    return find_farm_listing(db, item.product_id, farmer_id=item.farmer_id)


def restore_item_stock(db: Session, order: Order, item: OrderItem) -> bool:
    """Give a canceled item's quantity back to its listing.

    Returns False when the listing no longer exists (e.g. the product was
    removed from the farm), in which case there is nothing to restore.
    """
    listing = listing_for_item(db, order, item)
    if listing is None:
        logger.warning(
            "No listing found for order item %s (product %s); stock not restored", item.id, item.product_id
        )
        return False
    increment_stock(db, type(listing), listing.id, item.quantity)
    logger.info("Restored %s units to %s %s", item.quantity, type(listing).__name__, listing.id)
    return True
