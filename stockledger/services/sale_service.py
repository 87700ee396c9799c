from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.core.errors import LockContentionError, StockRejectedError
from stockledger.core.events import (
    ChangeCause,
    EventBus,
    QuantityChanged,
    discard_events,
    drain_events,
    event_bus,
    queue_event,
)
from stockledger.core.locks import KeyLockRegistry, get_lock_registry
from stockledger.database import SessionLocal, begin_write
from stockledger.models.sales import SaleItem
from stockledger.services.ledger import (
    apply_decrement,
    ensure_available,
    lock_inventory_row,
    resolve_sale_store,
)
from stockledger.services.stock_gate import Admission, admit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    sale_item_id: int
    sale_id: int
    store_id: int
    product_id: int
    quantity: int
    remaining: int


def commit_sale_line(db: Session, sale_id: int, product_id: int, quantity: int) -> CommitResult:
    """Record a sale line and take its quantity out of the ledger.

    Runs inside the caller's transaction. The admission check runs before
    the line is written and the ledger row is validated again right before
    the subtraction; either rejection leaves the transaction for the caller
    to roll back, so a denied line is never recorded.
    """
    admission = admit(db, sale_id, product_id, quantity)
    admission.raise_for_rejection()
    store_id = admission.store_id

    item = SaleItem(sale_id=sale_id, product_id=product_id, quantity=quantity)
    db.add(item)
    db.flush()

    row = lock_inventory_row(db, store_id, product_id)
    ensure_available(row, store_id, product_id, quantity)
    remaining = apply_decrement(db, row, quantity)

    queue_event(
        db,
        QuantityChanged(
            store_id=store_id,
            product_id=product_id,
            quantity=remaining,
            delta=-quantity,
            cause=ChangeCause.SALE,
        ),
    )
    return CommitResult(
        sale_item_id=item.id,
        sale_id=sale_id,
        store_id=store_id,
        product_id=product_id,
        quantity=quantity,
        remaining=remaining,
    )


class SaleService:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        locks: Optional[KeyLockRegistry] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks or get_lock_registry()
        self._bus = bus or event_bus

    def _resolve_store(self, sale_id: int) -> int:
        # Short-lived session: no transaction may be open while waiting on a key lock.
        db = self._session_factory()
        try:
            return resolve_sale_store(db, sale_id)
        finally:
            db.close()

    def check_line(self, sale_id: int, product_id: int, quantity: int) -> Admission:
        store_id = self._resolve_store(sale_id)
        with self._locks.hold(store_id, product_id):
            db = self._session_factory()
            try:
                return admit(db, sale_id, product_id, quantity)
            except OperationalError as exc:
                raise LockContentionError(store_id, product_id) from exc
            finally:
                db.rollback()
                db.close()

    def add_line(self, sale_id: int, product_id: int, quantity: int) -> CommitResult:
        store_id = self._resolve_store(sale_id)
        with self._locks.hold(store_id, product_id):
            db = self._session_factory()
            try:
                begin_write(db)
                result = commit_sale_line(db, sale_id, product_id, quantity)
                db.commit()
                events = drain_events(db)
            except StockRejectedError as exc:
                db.rollback()
                discard_events(db)
                logger.info("Sale line rejected for sale %s: %s", sale_id, exc)
                raise
            except OperationalError as exc:
                db.rollback()
                discard_events(db)
                raise LockContentionError(store_id, product_id) from exc
            except SQLAlchemyError:
                db.rollback()
                discard_events(db)
                raise
            finally:
                db.close()

        logger.info(
            "Sale line committed: sale=%s store=%s product=%s qty=%s remaining=%s",
            result.sale_id,
            result.store_id,
            result.product_id,
            result.quantity,
            result.remaining,
        )
        for event in events:
            self._bus.publish(event)
        return result


__all__ = ["CommitResult", "SaleService", "commit_sale_line"]
