"""Buyer- and farmer-initiated cancellations.

Every item that leaves the ACTIVE state gives its quantity back to the
listing it was sold from, in the same transaction that flips its status and
recomputes the order total.

Both flows lock the order row first and its item rows second, so a buyer
cancelling the whole order and farmers cancelling single items of it are
applied one after another.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from core.db import transaction
from models.enums import HistoryAction, OrderItemStatus, OrderStatus, OrderType
from models.event_product import EventProduct
from models.order import Order
from models.order_item import OrderItem
from models.user import User
from services.errors import BusinessRuleError, ForbiddenError, NotFoundError
from services.orders import append_history, recompute_total
from services.stock import restore_item_stock

logger = logging.getLogger(__name__)


@dataclass
class OrderCancellation:
    order: Order
    canceled_items: List[OrderItem]


@dataclass
class ItemCancellation:
    item: OrderItem
    order: Order
    new_total_price: Decimal
    order_canceled: bool


def _ensure_event_running(order: Order, ended_message: str, now: datetime | None = None) -> None:
    if order.event is None:
        raise BusinessRuleError("Event for this preorder was not found")
    if order.event.has_ended(now):
        raise BusinessRuleError(ended_message)


def _lock_order(db: Session, order_id: int) -> Order | None:
    return db.query(Order).filter(Order.id == order_id).with_for_update().populate_existing().one_or_none()


def _lock_items(db: Session, order_id: int) -> List[OrderItem]:
    return (
        db.query(OrderItem)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
        .with_for_update()
        .populate_existing()
        .all()
    )


def cancel_order(
    db: Session, order_id: int, user: User, order_type: str, now: datetime | None = None
) -> OrderCancellation:
    order = _lock_order(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.buyer_id is None or order.buyer_id != user.id:
        raise ForbiddenError("Unauthorized")
    if order.order_type != order_type:
        raise BusinessRuleError("This order cannot be canceled")
    if order.status == OrderStatus.CANCELED:
        raise BusinessRuleError("Order is already canceled")
    if order_type == OrderType.PREORDER:
        _ensure_event_running(order, "Preorders cannot be canceled after the event has ended", now)

    with transaction(db):
        canceled: List[OrderItem] = []
        for item in _lock_items(db, order.id):
            if item.is_active:
                restore_item_stock(db, order, item)
                canceled.append(item)
            item.status = OrderItemStatus.CANCELED

        order.status = OrderStatus.CANCELED
        recompute_total(db, order)
        message = (
            "Customer canceled entire preorder"
            if order_type == OrderType.PREORDER
            else "Customer canceled the entire order"
        )
        append_history(db, order, HistoryAction.ORDER_CANCELED, message, user_id=user.id)

    logger.info("Order %s canceled by buyer %s (%d items restocked)", order.order_number, user.id, len(canceled))
    return OrderCancellation(order=order, canceled_items=canceled)


def _ensure_item_owner(db: Session, order: Order, item: OrderItem, farmer: User) -> None:
    if order.order_type == OrderType.PREORDER:
        owned = (
            db.query(EventProduct.id)
            .filter(
                EventProduct.event_id == order.event_id,
                EventProduct.product_id == item.product_id,
                EventProduct.user_id == farmer.id,
            )
            .first()
        )
        if owned is None:
            raise ForbiddenError("Unauthorized")
        return

    if item.farmer_id is None or item.farmer_id != farmer.id:
        raise ForbiddenError("Not your product")


def _active_item_count(db: Session, order_id: int) -> int:
    return (
        db.query(OrderItem)
        .filter(OrderItem.order_id == order_id, OrderItem.status == OrderItemStatus.ACTIVE)
        .count()
    )


def cancel_item(
    db: Session, item_id: int, farmer: User, order_type: str, now: datetime | None = None
) -> ItemCancellation:
    order_id = db.query(OrderItem.order_id).filter(OrderItem.id == item_id).scalar()
    if order_id is None:
        raise NotFoundError("Order item not found")
    order = _lock_order(db, order_id)
    item = db.query(OrderItem).filter(OrderItem.id == item_id).with_for_update().populate_existing().one_or_none()
    if not order or not item:
        raise NotFoundError("Order item not found")
    if order.order_type != order_type:
        raise BusinessRuleError("This item cannot be canceled")
    if item.product_id is None:
        raise NotFoundError("Product not found for this item")

    _ensure_item_owner(db, order, item, farmer)

    if not item.is_active:
        raise BusinessRuleError("Item is already canceled")
    if order_type == OrderType.PREORDER:
        _ensure_event_running(order, "Farmer cannot cancel items after the event has ended", now)

    with transaction(db):
        item.status = OrderItemStatus.CANCELED
        restore_item_stock(db, order, item)
        new_total = recompute_total(db, order)

        order_canceled = _active_item_count(db, order.id) == 0
        if order_canceled:
            order.status = OrderStatus.CANCELED

        label = "preorder item" if order_type == OrderType.PREORDER else "item"
        append_history(
            db,
            order,
            HistoryAction.ITEM_CANCELED,
            f'Farmer canceled {label} "{item.product_name}"',
            user_id=farmer.id,
        )

    logger.info(
        "Item %s of order %s canceled by farmer %s; new total %s%s",
        item.id,
        order.order_number,
        farmer.id,
        new_total,
        " (order canceled)" if order_canceled else "",
    )
    return ItemCancellation(item=item, order=order, new_total_price=new_total, order_canceled=order_canceled)
