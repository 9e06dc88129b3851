from decimal import Decimal
from typing import List, Optional

from schemas.base import CamelModel, Money


class FarmerTotals(CamelModel):
    orders: int = 0
    preorders: int = 0
    total_revenue: Money = Decimal("0.00")
    standard_revenue: Money = Decimal("0.00")
    preorder_revenue: Money = Decimal("0.00")
    items_sold: int = 0
    avg_ticket: Money = Decimal("0.00")


class BestSeller(CamelModel):
    product_id: int
    name: str
    quantity: int
    revenue: Money


class TopRated(CamelModel):
    product_id: int
    name: str
    average_rating: Optional[float] = None
    review_count: int


class RatingSummary(CamelModel):
    average: Optional[float] = None
    total_reviews: int = 0
    top_rated: List[TopRated] = []


class FarmerStatsOut(CamelModel):
    totals: FarmerTotals
    best_sellers: List[BestSeller]
    ratings: RatingSummary


class PublicStatsOut(CamelModel):
    farmers: int
    orders: int
    preorders: int
