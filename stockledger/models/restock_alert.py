from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String

from stockledger.database.base import Base


class RestockAlert(Base):
    __tablename__ = "restock_alerts"

    product_id = Column(Integer, ForeignKey("products.id"), primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), primary_key=True)

    # Snapshots taken when the alert opened; never refreshed.
    product_name = Column(String)
    quantity = Column(Integer, nullable=False)
    alert_date = Column(Date)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_restock_alerts_store", "store_id"),
    )


__all__ = ["RestockAlert"]
