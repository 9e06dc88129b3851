from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from schemas.order import OrderOut
from services.orders import get_order_by_number

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("/{order_number}", response_model=OrderOut)
def get_order(order_number: str, db: Session = Depends(get_db)):
    return OrderOut.from_order(get_order_by_number(db, order_number))
