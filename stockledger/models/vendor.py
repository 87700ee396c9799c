from sqlalchemy import Column, ForeignKey, Integer, Numeric, String

from stockledger.database.base import Base


class Vendor(Base):
    """Purchase price a vendor charges for one product."""

    __tablename__ = "vendors"

    vendor_id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), primary_key=True)

    vendor_name = Column(String, nullable=False, default="")
    purchase_price = Column(Numeric(12, 2), nullable=False)


__all__ = ["Vendor"]
