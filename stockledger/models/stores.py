from sqlalchemy import Column, Integer, String

from stockledger.database.base import Base


class Store(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=False, default="")


__all__ = ["Store"]
