from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Index, Integer

from stockledger.database.base import Base


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)
    sale_date = Column(Date, nullable=False)

    __table_args__ = (
        Index("idx_sales_store_date", "store_id", "sale_date"),
    )


class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        Index("idx_sale_items_sale", "sale_id"),
        Index("idx_sale_items_product", "product_id"),
    )


__all__ = ["Sale", "SaleItem"]
