from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer

from stockledger.database.base import Base


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    vendor_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)
    delivery_date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_deliveries_quantity_positive"),
        Index("idx_deliveries_store_date", "store_id", "delivery_date"),
    )


__all__ = ["Delivery"]
