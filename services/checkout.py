"""Order creation for standard checkout and event preorders.

Both flows create the order, its items and the ``ORDER_CREATED`` audit entry,
and take the purchased quantities out of the matching listings, all inside
one transaction. Any failure (for example a listing running out of stock
halfway through the cart) rolls the whole checkout back.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Union

from sqlalchemy.orm import Session

from core.db import transaction
from models.enums import HistoryAction, OrderItemStatus, OrderStatus, OrderType, PaymentMethod
from models.event import Event, EventParticipant
from models.event_product import EventProduct
from models.farm import Farm
from models.farm_product import FarmProduct
from models.order import Order
from models.order_item import OrderItem
from models.user import User
from schemas.checkout import CartItemIn, CheckoutUserInfo, PreorderUserInfo
from services.errors import BusinessRuleError, InsufficientStockError, NotFoundError
from services.orders import append_history, short_number, sum_lines, to_decimal
from services.stock import decrement_stock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredBuyer:
    user_id: int


@dataclass(frozen=True)
class GuestBuyer:
    email: str


Buyer = Union[RegisteredBuyer, GuestBuyer]


def resolve_buyer(buyer_id: int | None, email: str | None) -> Buyer:
    """Pick the authoritative buyer identity; a registered id wins over an e-mail."""
    if buyer_id:
        return RegisteredBuyer(user_id=buyer_id)
    if email:
        return GuestBuyer(email=email.strip().lower())
    raise BusinessRuleError("Enter an email to finish order")


def _ensure_buyer_exists(db: Session, buyer: Buyer) -> None:
    if isinstance(buyer, RegisteredBuyer) and db.get(User, buyer.user_id) is None:
        raise NotFoundError("Buyer not found")


def create_standard_order(db: Session, cart_items: Sequence[CartItemIn], user_info: CheckoutUserInfo) -> Order:
    if not cart_items:
        raise BusinessRuleError("Cart is empty")

    buyer = resolve_buyer(user_info.buyer_id, user_info.email)
    _ensure_buyer_exists(db, buyer)

    requested: Dict[int, int] = {}
    for line in cart_items:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    candidates: Dict[int, List[FarmProduct]] = {}
    for product_id in requested:
        found = (
            db.query(FarmProduct)
            .filter(FarmProduct.product_id == product_id, FarmProduct.is_available.is_(True))
            .order_by(FarmProduct.id)
            .all()
        )
        if not found:
            raise BusinessRuleError("Some products are not available")
        candidates[product_id] = found

    # First listing, by id, that holds the whole quantity asked for across the cart
    listings: Dict[int, FarmProduct] = {}
    for product_id, found in candidates.items():
        listing = next((l for l in found if l.stock >= requested[product_id]), None)
        if listing is None:
            raise InsufficientStockError(requested=requested[product_id])
        listings[product_id] = listing

    farmer_by_farm = {
        farm_id: farmer_id
        for farm_id, farmer_id in db.query(Farm.id, Farm.farmer_id)
        .filter(Farm.id.in_({l.farm_id for l in listings.values()}))
        .all()
    }

    with transaction(db):
        order = Order(
            order_type=OrderType.STANDARD,
            status=OrderStatus.PENDING,
            buyer_id=buyer.user_id if isinstance(buyer, RegisteredBuyer) else None,
            anonymous_email=buyer.email if isinstance(buyer, GuestBuyer) else None,
            contact_name=user_info.contact_name,
            contact_phone=user_info.contact_phone,
            delivery_street=user_info.delivery_street,
            delivery_city=user_info.delivery_city,
            delivery_region=user_info.delivery_region,
            delivery_postal_code=user_info.delivery_postal_code,
            delivery_country=user_info.delivery_country,
            payment_method=user_info.payment_method,
            total_price=sum_lines(cart_items),
        )
        db.add(order)
        db.flush()

        for line in cart_items:
            listing = listings[line.product_id]
            decrement_stock(db, FarmProduct, listing.id, line.quantity)
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    farmer_id=farmer_by_farm.get(listing.farm_id),
                    farm_product_id=listing.id,
                    quantity=line.quantity,
                    unit_price=to_decimal(line.unit_price),
                    product_name=line.product_name,
                    seller_name=line.seller_name,
                    status=OrderItemStatus.ACTIVE,
                )
            )

        db.flush()
        append_history(
            db,
            order,
            HistoryAction.ORDER_CREATED,
            f"Order #{short_number(order)} was created",
            user_id=order.buyer_id,
        )

    db.refresh(order)
    logger.info("Created standard order %s (total %s, %d items)", order.order_number, order.total_price, len(cart_items))
    return order


def create_preorder(
    db: Session, event_id: int, cart_items: Sequence[CartItemIn], user_info: PreorderUserInfo
) -> Order:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")

    buyer = resolve_buyer(user_info.buyer_id, user_info.email)
    _ensure_buyer_exists(db, buyer)

    product_ids = {line.product_id for line in cart_items}
    listings: Dict[int, EventProduct] = {
        ep.product_id: ep
        for ep in db.query(EventProduct)
        .filter(EventProduct.event_id == event.id, EventProduct.product_id.in_(product_ids))
        .all()
    }
    if product_ids - listings.keys():
        raise BusinessRuleError("Some products are not available for this event")

    stall_names: Dict[int, str | None] = {
        p.user_id: (p.stall_name.strip() or None) if p.stall_name else None
        for p in db.query(EventParticipant).filter(EventParticipant.event_id == event.id).all()
    }

    with transaction(db):
        order = Order(
            order_type=OrderType.PREORDER,
            status=OrderStatus.PENDING,
            event_id=event.id,
            buyer_id=buyer.user_id if isinstance(buyer, RegisteredBuyer) else None,
            anonymous_email=buyer.email if isinstance(buyer, GuestBuyer) else None,
            contact_name=user_info.contact_name,
            contact_phone=user_info.contact_phone,
            delivery_street=event.street,
            delivery_city=event.city,
            delivery_region=event.region,
            delivery_postal_code=event.postal_code,
            delivery_country=event.country,
            payment_method=PaymentMethod.CASH,
            is_paid=False,
            is_delivered=False,
            total_price=sum_lines(cart_items),
        )
        db.add(order)
        db.flush()

        items: List[OrderItem] = []
        for line in cart_items:
            listing = listings[line.product_id]
            decrement_stock(db, EventProduct, listing.id, line.quantity)
            seller = listing.user
            items.append(
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    farmer_id=listing.user_id,
                    quantity=line.quantity,
                    unit_price=to_decimal(line.unit_price),
                    product_name=line.product_name,
                    seller_name=seller.name if seller and seller.name else line.seller_name,
                    stall_name=stall_names.get(listing.user_id),
                    status=OrderItemStatus.ACTIVE,
                )
            )
        db.add_all(items)

        db.flush()
        append_history(
            db,
            order,
            HistoryAction.ORDER_CREATED,
            f"Preorder #{short_number(order)} created.",
            user_id=order.buyer_id,
        )

    db.refresh(order)
    logger.info("Created preorder %s for event %s (total %s)", order.order_number, event.id, order.total_price)
    return order
