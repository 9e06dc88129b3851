from sqlalchemy import ForeignKey, Integer, Numeric, Boolean, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base


class FarmProduct(Base):
    __tablename__ = "farm_products"
    __table_args__ = (
        UniqueConstraint("farm_id", "product_id", name="uq_farm_product"),
        CheckConstraint("stock >= 0", name="ck_farm_product_stock"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    farm_id: Mapped[int] = mapped_column(ForeignKey("farms.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    price: Mapped[float] = mapped_column(Numeric(12, 2))
    stock: Mapped[int] = mapped_column(Integer, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    farm = relationship("Farm", back_populates="farm_products")
    product = relationship("Product", back_populates="farm_links")
