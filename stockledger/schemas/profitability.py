from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class StoreProfitabilityRead(BaseModel):
    store_profitability_id: int
    store_id: int
    profit_month: date
    total_revenue: Decimal
    total_expense: Decimal
    net_profit: Decimal

    model_config = ConfigDict(from_attributes=True)


class StoreRecomputeRead(BaseModel):
    store_id: int
    store_profitability_id: int
    profit_month: date
    total_revenue: Optional[Decimal] = None
    total_expense: Optional[Decimal] = None
    net_profit: Optional[Decimal] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RecomputeRead(BaseModel):
    status: str
    year: int
    month: int
    stores: List[StoreRecomputeRead]
