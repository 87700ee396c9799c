from sqlalchemy import Column, ForeignKey, Integer

from stockledger.database.base import Base


class InventoryRow(Base):
    """Current on-hand quantity for one (store, product) pair.

    Rows are created by the first delivery for the pair and never deleted.
    ``quantity >= 0`` is guaranteed by the sale-line checks, not by the table.
    """

    __tablename__ = "inventory"

    store_id = Column(Integer, ForeignKey("stores.id"), primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), primary_key=True)

    quantity = Column(Integer, nullable=False, default=0)


__all__ = ["InventoryRow"]
