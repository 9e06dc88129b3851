import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, Numeric, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base
from models.enums import OrderStatus, OrderType, PaymentMethod


def _new_order_number() -> str:
    return str(uuid.uuid4())


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    order_number: Mapped[str] = mapped_column(String(36), unique=True, index=True, default=_new_order_number)
    order_type: Mapped[str] = mapped_column(String(20), default=OrderType.STANDARD, index=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.PENDING)

    buyer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    anonymous_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_id: Mapped[int | None] = mapped_column(ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)

    # Derived from ACTIVE items, see services.orders.recompute_total
    total_price: Mapped[float] = mapped_column(Numeric(12, 2), default=0)

    contact_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    delivery_street: Mapped[str | None] = mapped_column(String(150), nullable=True)
    delivery_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delivery_region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delivery_postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    delivery_country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    payment_method: Mapped[str] = mapped_column(String(20), default=PaymentMethod.CASH)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    is_delivered: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    buyer = relationship("User")
    event = relationship("Event")
    items = relationship(
        "OrderItem", cascade="all, delete-orphan", back_populates="order", order_by="OrderItem.id"
    )
    history = relationship(
        "OrderHistory", cascade="all, delete-orphan", back_populates="order", order_by="OrderHistory.id"
    )

    @property
    def contact_email(self) -> str | None:
        if self.anonymous_email:
            return self.anonymous_email
        return self.buyer.email if self.buyer else None
