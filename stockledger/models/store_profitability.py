from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, Date, DateTime, Index, Integer, Numeric

from stockledger.database.base import Base


class StoreProfitability(Base):
    __tablename__ = "store_profitability"

    store_profitability_id = Column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=False
    )
    store_id = Column(Integer, nullable=False)
    profit_month = Column(Date, nullable=False)

    total_revenue = Column(Numeric(12, 2), nullable=False)
    total_expense = Column(Numeric(12, 2), nullable=False)
    net_profit = Column(Numeric(12, 2), nullable=False)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_store_profitability_month", "profit_month", "store_id"),
    )


__all__ = ["StoreProfitability"]
