from decimal import Decimal
from typing import Iterable, List

from sqlalchemy.orm import Session, selectinload

from models.enums import OrderItemStatus, OrderType
from models.event_product import EventProduct
from models.farm import Farm
from models.farm_product import FarmProduct
from models.order import Order
from models.order_history import OrderHistory
from models.order_item import OrderItem
from services.errors import NotFoundError


def to_decimal(value: float | int | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def line_total(unit_price, quantity: int) -> Decimal:
    return to_decimal(unit_price) * to_decimal(quantity)


def sum_lines(lines: Iterable) -> Decimal:
    """Sum ``unit_price * quantity`` over objects exposing both attributes."""
    total = Decimal("0.00")
    for line in lines:
        total += line_total(line.unit_price, line.quantity)
    return total.quantize(Decimal("0.01"))


def recompute_total(db: Session, order: Order) -> Decimal:
    """Set ``order.total_price`` to the sum of its ACTIVE items."""
    db.flush()
    active = (
        db.query(OrderItem)
        .filter(OrderItem.order_id == order.id, OrderItem.status == OrderItemStatus.ACTIVE)
        .all()
    )
    order.total_price = sum_lines(active)
    return order.total_price


def append_history(db: Session, order: Order, action: str, message: str, user_id: int | None = None) -> OrderHistory:
    entry = OrderHistory(order_id=order.id, user_id=user_id, action=action, message=message)
    db.add(entry)
    return entry


def short_number(order: Order) -> str:
    return order.order_number[:8]


def get_order_by_number(db: Session, order_number: str) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.event), selectinload(Order.buyer))
        .filter(Order.order_number == order_number)
        .one_or_none()
    )
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_buyer_orders(db: Session, buyer_id: int, order_type: str) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.event), selectinload(Order.buyer))
        .filter(Order.buyer_id == buyer_id, Order.order_type == order_type)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def farmer_product_ids(db: Session, farmer_id: int, order_type: str | None = None) -> set[int]:
    """Products a farmer sells, through farm listings, event listings or both."""
    ids: set[int] = set()
    if order_type in (None, OrderType.STANDARD):
        rows = (
            db.query(FarmProduct.product_id)
            .join(Farm, Farm.id == FarmProduct.farm_id)
            .filter(Farm.farmer_id == farmer_id)
            .all()
        )
        ids.update(r[0] for r in rows)
    if order_type in (None, OrderType.PREORDER):
        rows = db.query(EventProduct.product_id).filter(EventProduct.user_id == farmer_id).all()
        ids.update(r[0] for r in rows)
    return ids


def list_farmer_orders(db: Session, farmer_id: int, order_type: str) -> List[tuple[Order, List[OrderItem]]]:
    """Orders containing the farmer's products, each paired with only that farmer's items."""
    product_ids = farmer_product_ids(db, farmer_id, order_type)
    if not product_ids:
        return []

    orders = (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.event), selectinload(Order.buyer))
        .filter(
            Order.order_type == order_type,
            Order.items.any(OrderItem.product_id.in_(product_ids)),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [(order, [i for i in order.items if i.product_id in product_ids]) for order in orders]
