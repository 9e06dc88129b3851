"""Transactional e-mails sent after an order-changing request has committed.

Notifications never affect the outcome of the request that triggered them:
rendering or queueing failures are logged and dropped.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sqlalchemy.orm import Session

from core.config import settings
from models.enums import OrderType
from models.event import Event
from models.offer import Offer
from models.order import Order
from models.order_item import OrderItem
from models.user import User
from services import email as email_service
from services.orders import line_total

logger = logging.getLogger(__name__)


@dataclass
class FarmerGroup:
    farmer: User
    items: List[Dict[str, Any]] = field(default_factory=list)
    total_price: Decimal = Decimal("0.00")


def _deliver(to_email: str | None, subject: str, template: str, context: Dict[str, Any]) -> bool:
    if not to_email:
        return False
    try:
        email_service.send_templated_email(to_email, subject, template, context)
        return True
    except Exception:
        logger.exception("Failed to send '%s' email to %s", template, to_email)
        return False


def pickup_info(street=None, postal_code=None, city=None, country=None) -> str:
    town = " ".join(p for p in (postal_code, city) if p)
    return " • ".join(p for p in (street, town, country) if p)


def _item_lines(items: Iterable[OrderItem]) -> List[Dict[str, Any]]:
    return [{"name": i.product_name, "quantity": i.quantity, "unit_price": i.unit_price} for i in items]


def group_items_by_farmer(db: Session, items: Iterable[OrderItem]) -> List[FarmerGroup]:
    """Group order items by the farmer who sells them, in first-seen order."""
    groups: "OrderedDict[int, FarmerGroup]" = OrderedDict()
    for item in items:
        if item.farmer_id is None:
            continue
        group = groups.get(item.farmer_id)
        if group is None:
            farmer = db.get(User, item.farmer_id)
            if farmer is None or not farmer.email:
                continue
            group = groups[item.farmer_id] = FarmerGroup(farmer=farmer)
        group.items.append({"name": item.product_name, "quantity": item.quantity, "unit_price": item.unit_price})
        group.total_price += line_total(item.unit_price, item.quantity)
    return list(groups.values())


def notify_order_created(order: Order) -> bool:
    delivery = pickup_info(
        order.delivery_street, order.delivery_postal_code, order.delivery_city, order.delivery_country
    )
    return _deliver(
        order.contact_email,
        f"Order confirmation #{order.order_number[:8]}",
        "emails/order_confirmation.txt",
        {
            "order_number": order.order_number,
            "payment_method": order.payment_method,
            "items": _item_lines(order.items),
            "total_price": order.total_price,
            "delivery": delivery,
            "payment_link": f"{settings.FRONTEND_URL}/order/{order.id}/pay" if order.payment_method == "CARD" else None,
        },
    )


def notify_preorder_created(db: Session, order: Order, event: Event) -> int:
    """Confirm the preorder to the buyer and tell every involved farmer. Returns e-mails sent."""
    pickup = pickup_info(event.street, event.postal_code, event.city, event.country)
    sent = int(
        _deliver(
            order.contact_email,
            f"Preorder #{order.order_number[:8]} received",
            "emails/preorder_created.txt",
            {
                "order_number": order.order_number,
                "event_title": event.title,
                "pickup_info": pickup,
                "items": _item_lines(order.items),
                "total_price": order.total_price,
            },
        )
    )
    for group in group_items_by_farmer(db, order.items):
        sent += _deliver(
            group.farmer.email,
            f"New preorder #{order.order_number[:8]}",
            "emails/farmer_order_notification.txt",
            {
                "order_number": order.order_number,
                "is_preorder": True,
                "event_title": event.title,
                "customer_name": order.contact_name,
                "customer_email": order.contact_email,
                "customer_phone": order.contact_phone,
                "items": group.items,
                "total_price": group.total_price,
                "pickup_info": pickup,
            },
        )
    return sent


def notify_order_canceled(db: Session, order: Order, canceled_items: List[OrderItem]) -> int:
    is_preorder = order.order_type == OrderType.PREORDER
    sent = int(
        _deliver(
            order.contact_email,
            f"{'Preorder' if is_preorder else 'Order'} #{order.order_number[:8]} canceled",
            "emails/order_cancellation.txt",
            {
                "order_number": order.order_number,
                "is_preorder": is_preorder,
                "reason": "You canceled the preorder." if is_preorder else "You canceled the order.",
            },
        )
    )
    if not is_preorder:
        return sent

    for group in group_items_by_farmer(db, canceled_items):
        sent += _deliver(
            group.farmer.email,
            f"Preorder #{order.order_number[:8]} canceled",
            "emails/farmer_order_cancellation.txt",
            {
                "order_number": order.order_number,
                "is_preorder": True,
                "event_title": order.event.title if order.event else None,
                "items": group.items,
                "total_price": group.total_price,
                "reason": "Customer canceled the preorder.",
            },
        )
    return sent


def notify_item_canceled(order: Order, item: OrderItem, remaining_total, order_canceled: bool) -> bool:
    is_preorder = order.order_type == OrderType.PREORDER
    return _deliver(
        order.contact_email,
        f"Item removed from {'preorder' if is_preorder else 'order'} #{order.order_number[:8]}",
        "emails/order_item_cancellation.txt",
        {
            "order_number": order.order_number,
            "item_name": item.product_name,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "is_preorder": is_preorder,
            "reason": "The farmer canceled this item.",
            "remaining_total": remaining_total,
            "order_canceled": order_canceled,
        },
    )


def notify_payment_succeeded(order: Order) -> bool:
    delivery = pickup_info(
        order.delivery_street, order.delivery_postal_code, order.delivery_city, order.delivery_country
    )
    return _deliver(
        order.contact_email,
        f"Payment received for order #{order.order_number[:8]}",
        "emails/payment_success.txt",
        {
            "order_number": order.order_number,
            "items": _item_lines(i for i in order.items if i.is_active),
            "total_price": order.total_price,
            "currency": settings.PAYMENT_CURRENCY,
            "delivery": delivery,
        },
    )


def notify_offer_response(offer: Offer, sender_email: str, message: str) -> bool:
    """Forward a visitor's response to the offer author.

    Unlike order notifications this is the whole point of the request, so the
    caller learns whether it was handed over.
    """
    author = offer.user
    return _deliver(
        author.email if author else None,
        f"Response to your offer: {offer.title}",
        "emails/offer_response.txt",
        {
            "offer_title": offer.title,
            "sender_email": sender_email,
            "message": message,
            "seller_name": author.name if author else "",
        },
    )
