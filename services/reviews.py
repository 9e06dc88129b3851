from sqlalchemy import func
from sqlalchemy.orm import Session

from models.product import Product
from models.review import Review


def recompute_product_rating(db: Session, product_id: int) -> float:
    """Store the mean review rating on the product (0 when it has no reviews)."""
    db.flush()
    avg = db.query(func.avg(Review.rating)).filter(Review.product_id == product_id).scalar()
    rating = round(float(avg), 2) if avg is not None else 0.0
    product = db.get(Product, product_id)
    if product is not None:
        product.rating = rating
    return rating
