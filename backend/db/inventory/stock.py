from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from ..database import Base


class StockRecord(Base):
    __tablename__ = "stock"
    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="ck_stock_available_quantity_non_negative"),
    )

    store_id = Column(String(36), ForeignKey("stores.id", ondelete="CASCADE"), primary_key=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True, index=True)

    available_quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
