from typing import Any, Dict, List, Literal, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from schemas.base import CamelModel, Money

PHONE_PATTERN = r"^\+?\d{6,15}$"


class CartItemIn(CamelModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)
    unit_price: Money = Field(ge=0)
    product_name: str = Field(min_length=1, max_length=200)
    seller_name: str = Field(min_length=1, max_length=150)


class CheckoutUserInfo(CamelModel):
    buyer_id: Optional[int] = Field(default=None, gt=0)
    email: Optional[EmailStr] = None
    contact_name: Optional[str] = Field(default=None, max_length=150)
    contact_phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    delivery_city: str = Field(min_length=1, max_length=100)
    delivery_street: str = Field(min_length=1, max_length=150)
    delivery_region: Optional[str] = Field(default=None, max_length=100)
    delivery_postal_code: str = Field(min_length=1, max_length=20)
    delivery_country: str = Field(min_length=1, max_length=100)

    payment_method: Literal["CARD", "CASH"]


class CheckoutRequest(CamelModel):
    # Cart and user info are checked in order by the route so that an empty
    # cart is reported before anything else
    cart_items: List[CartItemIn] = Field(default_factory=list)
    user_info: Optional[Dict[str, Any]] = None


class PreorderUserInfo(CamelModel):
    buyer_id: Optional[int] = Field(default=None, gt=0)
    email: Optional[EmailStr] = None
    contact_name: str = Field(min_length=1, max_length=150)
    contact_phone: str = Field(min_length=1, pattern=PHONE_PATTERN)

    @model_validator(mode="after")
    def require_identity(self):
        if not self.buyer_id and not self.email:
            raise ValueError("Either buyerId or email must be provided")
        return self


class PreorderRequest(CamelModel):
    event_id: int
    cart_items: List[CartItemIn]
    user_info: PreorderUserInfo

    @field_validator("cart_items")
    @classmethod
    def cart_not_empty(cls, v):
        if not v:
            raise ValueError("Cart cannot be empty")
        return v


class CheckoutCreated(CamelModel):
    message: str
    order_id: int
    order_number: str


class ItemCancelOut(CamelModel):
    message: str
    new_total_price: Money
    order_canceled: bool
