from sqlalchemy import Column, Integer, Numeric, String

from stockledger.database.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)


__all__ = ["Product"]
