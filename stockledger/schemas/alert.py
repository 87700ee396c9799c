from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RestockAlertRead(BaseModel):
    product_id: int
    store_id: int
    product_name: Optional[str]
    quantity: int
    alert_date: Optional[date]
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class ReconcileRead(BaseModel):
    status: str
    closed: int
