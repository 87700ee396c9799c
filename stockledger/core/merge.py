"""Merge policies for the two upserts the ledger performs.

Deliveries accumulate into an existing inventory row; profitability rows are
recomputed from scratch and overwrite whatever was stored before.
"""

from decimal import Decimal
from typing import Optional, TypeVar

T = TypeVar("T")


def accumulate(existing: Optional[int], incoming: int) -> int:
    if incoming < 0:
        raise ValueError("incoming quantity must be non-negative")
    if existing is None:
        return incoming
    return existing + incoming


def overwrite(existing: Optional[T], incoming: T) -> T:
    return incoming


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"))


__all__ = ["accumulate", "overwrite", "to_money"]
