from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stockledger.core.errors import InsufficientStockError, NoInventoryRowError, SaleNotFoundError
from stockledger.models.inventory import InventoryRow
from stockledger.models.sales import Sale


def resolve_sale_store(db: Session, sale_id: int) -> int:
    store_id = db.execute(select(Sale.store_id).where(Sale.id == sale_id)).scalar_one_or_none()
    if store_id is None:
        raise SaleNotFoundError(sale_id)
    return store_id


def get_inventory_row(db: Session, store_id: int, product_id: int) -> Optional[InventoryRow]:
    return db.execute(
        select(InventoryRow)
        .where(
            InventoryRow.store_id == store_id,
            InventoryRow.product_id == product_id,
        )
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def lock_inventory_row(db: Session, store_id: int, product_id: int) -> Optional[InventoryRow]:
    """Fresh read of the ledger row with intent to write.

    Backends with row locks (PostgreSQL) hold the row until the transaction
    ends; ``populate_existing`` discards any copy cached in the session.
    """
    return db.execute(
        select(InventoryRow)
        .where(
            InventoryRow.store_id == store_id,
            InventoryRow.product_id == product_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def ensure_available(row: Optional[InventoryRow], store_id: int, product_id: int, quantity: int) -> int:
    if row is None:
        raise NoInventoryRowError(store_id, product_id)
    if row.quantity < quantity:
        raise InsufficientStockError(store_id, product_id, have=row.quantity, need=quantity)
    return row.quantity


def apply_decrement(db: Session, row: InventoryRow, quantity: int) -> int:
    # Conditional update: the row can only ever move down to zero, even if a
    # caller skipped the lock.
    result = db.execute(
        update(InventoryRow)
        .where(
            InventoryRow.store_id == row.store_id,
            InventoryRow.product_id == row.product_id,
            InventoryRow.quantity >= quantity,
        )
        .values(quantity=InventoryRow.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    db.refresh(row)
    if result.rowcount != 1:
        raise InsufficientStockError(row.store_id, row.product_id, have=row.quantity, need=quantity)
    return row.quantity


def validate_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValueError("quantity must be an integer")
    if quantity <= 0:
        raise ValueError("quantity must be greater than zero")
    return quantity


__all__ = [
    "apply_decrement",
    "ensure_available",
    "get_inventory_row",
    "lock_inventory_row",
    "resolve_sale_store",
    "validate_quantity",
]
