from datetime import datetime
from typing import List, Optional, Sequence

from schemas.base import CamelModel, Money


class OrderItemOut(CamelModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    quantity: int
    unit_price: Money
    seller_name: str
    stall_name: Optional[str] = None
    status: str


class DeliveryOut(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class ContactOut(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class EventSummaryOut(CamelModel):
    id: int
    title: str
    start_date: datetime
    end_date: datetime
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class BuyerOut(CamelModel):
    id: Optional[int] = None
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class OrderOut(CamelModel):
    id: int
    order_number: str
    status: str
    order_type: str
    created_at: datetime
    is_paid: bool
    payment_method: str
    total_price: Money
    contact: ContactOut
    delivery: DeliveryOut
    event: Optional[EventSummaryOut] = None
    items: List[OrderItemOut]

    @classmethod
    def from_order(cls, order, items: Sequence = None, **extra):
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            order_type=order.order_type,
            created_at=order.created_at,
            is_paid=order.is_paid,
            payment_method=order.payment_method,
            total_price=order.total_price or 0,
            contact=ContactOut(name=order.contact_name, phone=order.contact_phone, email=order.contact_email),
            delivery=DeliveryOut(
                street=order.delivery_street,
                city=order.delivery_city,
                region=order.delivery_region,
                postal_code=order.delivery_postal_code,
                country=order.delivery_country,
            ),
            event=EventSummaryOut.model_validate(order.event) if order.event else None,
            items=[OrderItemOut.model_validate(i) for i in (order.items if items is None else items)],
            **extra,
        )


class FarmerOrderOut(OrderOut):
    buyer: BuyerOut

    @classmethod
    def from_order(cls, order, items: Sequence = None, **extra):
        buyer = order.buyer
        return super().from_order(
            order,
            items,
            buyer=BuyerOut(
                id=order.buyer_id,
                email=order.contact_email,
                name=buyer.name if buyer else None,
                phone=buyer.phone if buyer else None,
            ),
            **extra,
        )
