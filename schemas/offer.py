from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from schemas.base import CamelModel, Money


class OfferProductIn(CamelModel):
    name: str = Field(min_length=2, max_length=200)
    category: str = Field(min_length=2, max_length=50)
    description: Optional[str] = None
    base_price: Optional[Money] = Field(default=None, gt=0)


class OfferProductUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    category: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = None
    base_price: Optional[Money] = Field(default=None, gt=0)


class OfferCreate(CamelModel):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = None
    product: OfferProductIn


class OfferUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = None
    product: Optional[OfferProductUpdate] = None


class OfferRespond(CamelModel):
    email: EmailStr
    message: str = Field(min_length=1, max_length=5000)


class OfferProductOut(CamelModel):
    id: int
    name: str
    category: str
    description: Optional[str] = None
    base_price: Optional[Money] = None


class OfferUserOut(CamelModel):
    id: int
    name: str


class OfferOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    user_id: int
    product_id: int
    created_at: datetime
    product: OfferProductOut
    user: Optional[OfferUserOut] = None


class OfferPage(CamelModel):
    items: List[OfferOut]
    page: int
    page_size: int
    total: int
    total_pages: int
    has_more: bool
