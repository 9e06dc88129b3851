from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from models.enums import OrderType, Role
from models.user import User
from schemas.base import MessageOut
from schemas.checkout import CheckoutCreated, ItemCancelOut, PreorderRequest
from schemas.order import FarmerOrderOut, OrderOut
from security.dependencies import get_current_user, require_role
from services import notifications
from services.cancellation import cancel_item, cancel_order
from services.checkout import create_preorder
from services.orders import list_buyer_orders, list_farmer_orders

router = APIRouter(prefix="/api/checkout-preorder", tags=["preorders"])


@router.post("", response_model=CheckoutCreated)
def checkout_preorder(data: PreorderRequest, db: Session = Depends(get_db)):
    order = create_preorder(db, data.event_id, data.cart_items, data.user_info)
    notifications.notify_preorder_created(db, order, order.event)
    return CheckoutCreated(message="Preorder created", order_id=order.id, order_number=order.order_number)


@router.get("/my-orders", response_model=List[OrderOut])
def my_preorders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [OrderOut.from_order(o) for o in list_buyer_orders(db, user.id, OrderType.PREORDER)]


@router.get("/farmer-orders", response_model=List[FarmerOrderOut])
def farmer_preorders(farmer: User = Depends(require_role(Role.FARMER)), db: Session = Depends(get_db)):
    return [
        FarmerOrderOut.from_order(order, items)
        for order, items in list_farmer_orders(db, farmer.id, OrderType.PREORDER)
    ]


@router.patch("/{order_id}/cancel", response_model=MessageOut)
def cancel_preorder(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = cancel_order(db, order_id, user, OrderType.PREORDER)
    notifications.notify_order_canceled(db, result.order, result.canceled_items)
    return MessageOut(message="Preorder canceled")


@router.patch("/item/{item_id}/cancel", response_model=ItemCancelOut)
def cancel_preorder_item(
    item_id: int, farmer: User = Depends(require_role(Role.FARMER)), db: Session = Depends(get_db)
):
    result = cancel_item(db, item_id, farmer, OrderType.PREORDER)
    notifications.notify_item_canceled(result.order, result.item, result.new_total_price, result.order_canceled)
    return ItemCancelOut(
        message="Preorder item canceled",
        new_total_price=result.new_total_price,
        order_canceled=result.order_canceled,
    )
