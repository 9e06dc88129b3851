from decimal import Decimal
from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.enums import OrderItemStatus, OrderType, Role
from models.order import Order
from models.order_item import OrderItem
from models.product import Product
from models.review import Review
from models.user import User
from services.orders import farmer_product_ids, line_total

TOP_N = 5


def _empty_farmer_stats() -> dict:
    return {
        "totals": {
            "orders": 0,
            "preorders": 0,
            "total_revenue": 0,
            "standard_revenue": 0,
            "preorder_revenue": 0,
            "items_sold": 0,
            "avg_ticket": 0,
        },
        "best_sellers": [],
        "ratings": {"average": None, "total_reviews": 0, "top_rated": []},
    }


def farmer_stats(db: Session, farmer_id: int) -> dict:
    """Sales and rating summary over every product the farmer sells.

    Only ACTIVE items count; canceled lines neither add revenue nor make an
    order count towards the totals.
    """
    product_ids = farmer_product_ids(db, farmer_id)
    if not product_ids:
        return _empty_farmer_stats()

    rows = (
        db.query(OrderItem, Order.id, Order.order_type, Product.name)
        .join(Order, Order.id == OrderItem.order_id)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .filter(OrderItem.product_id.in_(product_ids), OrderItem.status == OrderItemStatus.ACTIVE)
        .all()
    )

    order_ids = {OrderType.STANDARD: set(), OrderType.PREORDER: set()}
    revenue = {OrderType.STANDARD: Decimal("0.00"), OrderType.PREORDER: Decimal("0.00")}
    items_sold = 0
    best: Dict[int, dict] = {}

    for item, order_id, order_type, product_name in rows:
        total = line_total(item.unit_price, item.quantity)
        items_sold += item.quantity
        if order_type in order_ids:
            order_ids[order_type].add(order_id)
            revenue[order_type] += total

        entry = best.setdefault(
            item.product_id,
            {"product_id": item.product_id, "name": product_name or item.product_name or "Unknown product",
             "quantity": 0, "revenue": Decimal("0.00")},
        )
        entry["quantity"] += item.quantity
        entry["revenue"] += total

    best_sellers = sorted(best.values(), key=lambda e: (-e["quantity"], -e["revenue"]))[:TOP_N]

    rating_rows = (
        db.query(Review.product_id, Product.name, func.avg(Review.rating), func.count(Review.id))
        .join(Product, Product.id == Review.product_id)
        .filter(Review.product_id.in_(product_ids))
        .group_by(Review.product_id, Product.name)
        .all()
    )
    total_reviews = sum(count for _, _, _, count in rating_rows)
    rating_sum = sum(float(avg or 0) * count for _, _, avg, count in rating_rows)
    top_rated = sorted(
        (
            {"product_id": pid, "name": name or "Unknown product",
             "average_rating": float(avg) if avg is not None else None, "review_count": count}
            for pid, name, avg, count in rating_rows
        ),
        key=lambda r: -(r["average_rating"] or 0),
    )[:TOP_N]

    standard_orders = len(order_ids[OrderType.STANDARD])
    preorders = len(order_ids[OrderType.PREORDER])
    total_revenue = revenue[OrderType.STANDARD] + revenue[OrderType.PREORDER]
    total_orders = standard_orders + preorders

    return {
        "totals": {
            "orders": standard_orders,
            "preorders": preorders,
            "total_revenue": total_revenue,
            "standard_revenue": revenue[OrderType.STANDARD],
            "preorder_revenue": revenue[OrderType.PREORDER],
            "items_sold": items_sold,
            "avg_ticket": (total_revenue / total_orders).quantize(Decimal("0.01")) if total_orders else 0,
        },
        "best_sellers": best_sellers,
        "ratings": {
            "average": rating_sum / total_reviews if total_reviews else None,
            "total_reviews": total_reviews,
            "top_rated": top_rated,
        },
    }


def public_stats(db: Session) -> dict:
    return {
        "farmers": db.query(func.count(User.id)).filter(User.role == Role.FARMER).scalar() or 0,
        "orders": db.query(func.count(Order.id)).filter(Order.order_type == OrderType.STANDARD).scalar() or 0,
        "preorders": db.query(func.count(Order.id)).filter(Order.order_type == OrderType.PREORDER).scalar() or 0,
    }
