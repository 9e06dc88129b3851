from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base
from models.enums import OrderItemStatus


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    farmer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    # Farm listing a standard item was sold from; cancellations restock it
    farm_product_id: Mapped[int | None] = mapped_column(
        ForeignKey("farm_products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[float] = mapped_column(Numeric(12, 2))

    # Snapshot taken at purchase time
    product_name: Mapped[str] = mapped_column(String(200))
    seller_name: Mapped[str] = mapped_column(String(150))
    stall_name: Mapped[str | None] = mapped_column(String(150), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=OrderItemStatus.ACTIVE, index=True)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def is_active(self) -> bool:
        return self.status == OrderItemStatus.ACTIVE
