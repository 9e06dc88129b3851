from sqlalchemy import ForeignKey, Integer, Numeric, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base


class EventProduct(Base):
    __tablename__ = "event_products"
    __table_args__ = (
        UniqueConstraint("event_id", "product_id", name="uq_event_product"),
        CheckConstraint("stock >= 0", name="ck_event_product_stock"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), index=True)
    # Farmer selling the product at the event
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    price: Mapped[float] = mapped_column(Numeric(12, 2))
    stock: Mapped[int] = mapped_column(Integer, default=0)

    event = relationship("Event", back_populates="event_products")
    user = relationship("User")
    product = relationship("Product", back_populates="event_links")
