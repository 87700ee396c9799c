from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InventoryRead(BaseModel):
    store_id: int
    product_id: int
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class SaleLineRequest(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class AdmissionRead(BaseModel):
    allowed: bool
    store_id: int
    product_id: int
    need: int
    have: Optional[int] = None
    reason: Optional[str] = None


class SaleLineRead(BaseModel):
    sale_item_id: int
    sale_id: int
    store_id: int
    product_id: int
    quantity: int
    remaining: int


class DeliveryRequest(BaseModel):
    store_id: int
    product_id: int
    vendor_id: int
    quantity: int = Field(gt=0)
    delivery_date: Optional[date] = None


class DeliveryRead(BaseModel):
    outcome: str
    delivery_id: Optional[int] = None
    store_id: int
    product_id: int
    received: int
    quantity: int
