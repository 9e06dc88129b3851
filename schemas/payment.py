from pydantic import Field

from schemas.base import CamelModel, Money


class PaymentSessionIn(CamelModel):
    order_id: int = Field(gt=0)


class PaymentLinkOut(CamelModel):
    url: str


class PaymentVerifyIn(CamelModel):
    reference: str = Field(min_length=1, max_length=100)


class PaymentOut(CamelModel):
    reference: str
    status: str
    amount: Money
    currency: str
    order_id: int
    is_paid: bool
