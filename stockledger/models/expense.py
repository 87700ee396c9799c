from sqlalchemy import Column, Date, ForeignKey, Index, Integer, Numeric, String

from stockledger.database.base import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)

    expense_date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=False, default="")

    __table_args__ = (
        Index("idx_expenses_store_date", "store_id", "expense_date"),
    )


__all__ = ["Expense"]
