from typing import List

from fastapi import APIRouter, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.db import get_db
from models.enums import OrderType, Role
from models.user import User
from schemas.base import MessageOut
from schemas.checkout import CheckoutCreated, CheckoutRequest, CheckoutUserInfo, ItemCancelOut
from schemas.order import FarmerOrderOut, OrderOut
from security.dependencies import get_current_user, require_role
from services import notifications
from services.cancellation import cancel_item, cancel_order
from services.checkout import create_standard_order
from services.errors import BusinessRuleError
from services.orders import list_buyer_orders, list_farmer_orders

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


def _parse_user_info(raw: dict) -> CheckoutUserInfo:
    if not raw.get("buyerId") and not raw.get("buyer_id") and not raw.get("email"):
        raise BusinessRuleError("Enter an email to finish order")
    try:
        return CheckoutUserInfo.model_validate(raw)
    except ValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("body", "userInfo", *err["loc"])} for err in exc.errors()]
        )


@router.post("", response_model=CheckoutCreated)
def checkout(data: CheckoutRequest, db: Session = Depends(get_db)):
    if not data.cart_items:
        raise BusinessRuleError("Cart is empty")
    if not data.user_info:
        raise BusinessRuleError("Missing user info")

    user_info = _parse_user_info(data.user_info)
    order = create_standard_order(db, data.cart_items, user_info)
    notifications.notify_order_created(order)
    return CheckoutCreated(message="Order was successfully created", order_id=order.id, order_number=order.order_number)


@router.get("/my-orders", response_model=List[OrderOut])
def my_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [OrderOut.from_order(o) for o in list_buyer_orders(db, user.id, OrderType.STANDARD)]


@router.get("/farmer-orders", response_model=List[FarmerOrderOut])
def farmer_orders(farmer: User = Depends(require_role(Role.FARMER)), db: Session = Depends(get_db)):
    return [
        FarmerOrderOut.from_order(order, items)
        for order, items in list_farmer_orders(db, farmer.id, OrderType.STANDARD)
    ]


@router.patch("/{order_id}/cancel", response_model=MessageOut)
def cancel_whole_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = cancel_order(db, order_id, user, OrderType.STANDARD)
    notifications.notify_order_canceled(db, result.order, result.canceled_items)
    return MessageOut(message="Order canceled successfully")


@router.patch("/item/{item_id}/cancel", response_model=ItemCancelOut)
def cancel_order_item(
    item_id: int, farmer: User = Depends(require_role(Role.FARMER)), db: Session = Depends(get_db)
):
    result = cancel_item(db, item_id, farmer, OrderType.STANDARD)
    notifications.notify_item_canceled(result.order, result.item, result.new_total_price, result.order_canceled)
    return ItemCancelOut(
        message="Product from order canceled successfully",
        new_total_price=result.new_total_price,
        order_canceled=result.order_canceled,
    )
