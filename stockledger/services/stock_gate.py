from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from stockledger.core.errors import InsufficientStockError, NoInventoryRowError
from stockledger.services.ledger import lock_inventory_row, resolve_sale_store, validate_quantity


class RejectReason(str, Enum):
    NO_INVENTORY_ROW = "NO_INVENTORY_ROW"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


@dataclass(frozen=True)
class Admission:
    allowed: bool
    store_id: int
    product_id: int
    need: int
    have: Optional[int] = None
    reason: Optional[RejectReason] = None

    def raise_for_rejection(self) -> None:
        if self.allowed:
            return
        if self.reason is RejectReason.NO_INVENTORY_ROW:
            raise NoInventoryRowError(self.store_id, self.product_id)
        raise InsufficientStockError(self.store_id, self.product_id, have=self.have, need=self.need)


def admit(db: Session, sale_id: int, product_id: int, quantity: int) -> Admission:
    """Decide whether a proposed sale line may proceed. Never writes."""
    validate_quantity(quantity)
    store_id = resolve_sale_store(db, sale_id)
    row = lock_inventory_row(db, store_id, product_id)

    if row is None:
        return Admission(
            allowed=False,
            store_id=store_id,
            product_id=product_id,
            need=quantity,
            reason=RejectReason.NO_INVENTORY_ROW,
        )
    if row.quantity < quantity:
        return Admission(
            allowed=False,
            store_id=store_id,
            product_id=product_id,
            need=quantity,
            have=row.quantity,
            reason=RejectReason.INSUFFICIENT_STOCK,
        )
    return Admission(
        allowed=True,
        store_id=store_id,
        product_id=product_id,
        need=quantity,
        have=row.quantity,
    )


__all__ = ["Admission", "RejectReason", "admit"]
