from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.base import CamelModel


class ReviewCreate(CamelModel):
    product_id: int = Field(gt=0)
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewUpdate(CamelModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewUserOut(CamelModel):
    id: int
    name: str


class ReviewProductOut(CamelModel):
    id: int
    name: str


class ReviewOut(CamelModel):
    id: int
    product_id: int
    user_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    user: Optional[ReviewUserOut] = None
    product: Optional[ReviewProductOut] = None
