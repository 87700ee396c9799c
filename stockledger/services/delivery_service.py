from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.core import merge
from stockledger.core.errors import LockContentionError
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
from stockledger.models.delivery import Delivery
from stockledger.models.inventory import InventoryRow
from stockledger.services.ledger import lock_inventory_row, validate_quantity

logger = logging.getLogger(__name__)


class ReceiveOutcome(str, Enum):
    NEW_ROW = "NEW_ROW"
    MERGED_ROW = "MERGED_ROW"


@dataclass(frozen=True)
class ReceiveResult:
    outcome: ReceiveOutcome
    store_id: int
    product_id: int
    received: int
    quantity: int
    delivery_id: Optional[int] = None


def accumulate(db: Session, store_id: int, product_id: int, quantity: int) -> ReceiveResult:
    """Add a delivered quantity to the ledger, creating the row on first receipt."""
    validate_quantity(quantity)
    row = lock_inventory_row(db, store_id, product_id)

    if row is None:
        # Another writer may insert the same key first; the savepoint keeps the
        # rest of the transaction intact so we can merge into its row instead.
        savepoint = db.begin_nested()
        try:
            row = InventoryRow(
                store_id=store_id,
                product_id=product_id,
                quantity=merge.accumulate(None, quantity),
            )
            db.add(row)
            db.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "Inventory row for store_id=%s product_id=%s created concurrently; merging",
                store_id,
                product_id,
            )
            row = lock_inventory_row(db, store_id, product_id)
            if row is None:
                raise
        else:
            _queue_increase(db, store_id, product_id, row.quantity, quantity)
            return ReceiveResult(
                outcome=ReceiveOutcome.NEW_ROW,
                store_id=store_id,
                product_id=product_id,
                received=quantity,
                quantity=row.quantity,
            )

    row.quantity = merge.accumulate(row.quantity, quantity)
    db.flush()
    _queue_increase(db, store_id, product_id, row.quantity, quantity)
    return ReceiveResult(
        outcome=ReceiveOutcome.MERGED_ROW,
        store_id=store_id,
        product_id=product_id,
        received=quantity,
        quantity=row.quantity,
    )


def _queue_increase(db: Session, store_id: int, product_id: int, new_quantity: int, delta: int) -> None:
    queue_event(
        db,
        QuantityChanged(
            store_id=store_id,
            product_id=product_id,
            quantity=new_quantity,
            delta=delta,
            cause=ChangeCause.DELIVERY,
        ),
    )


def receive_delivery(
    db: Session,
    *,
    store_id: int,
    product_id: int,
    vendor_id: int,
    quantity: int,
    delivery_date: date,
) -> ReceiveResult:
    validate_quantity(quantity)
    delivery = Delivery(
        store_id=store_id,
        product_id=product_id,
        vendor_id=vendor_id,
        quantity=quantity,
        delivery_date=delivery_date,
    )
    db.add(delivery)
    db.flush()

    result = accumulate(db, store_id, product_id, quantity)
    return ReceiveResult(
        outcome=result.outcome,
        store_id=result.store_id,
        product_id=result.product_id,
        received=result.received,
        quantity=result.quantity,
        delivery_id=delivery.id,
    )


class DeliveryService:
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

    def receive(
        self,
        *,
        store_id: int,
        product_id: int,
        vendor_id: int,
        quantity: int,
        delivery_date: Optional[date] = None,
    ) -> ReceiveResult:
        with self._locks.hold(store_id, product_id):
            db = self._session_factory()
            try:
                begin_write(db)
                result = receive_delivery(
                    db,
                    store_id=store_id,
                    product_id=product_id,
                    vendor_id=vendor_id,
                    quantity=quantity,
                    delivery_date=delivery_date or date.today(),
                )
                db.commit()
                events = drain_events(db)
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
            "Delivery received: store=%s product=%s qty=%s on_hand=%s (%s)",
            result.store_id,
            result.product_id,
            result.received,
            result.quantity,
            result.outcome.value,
        )
        for event in events:
            self._bus.publish(event)
        return result


__all__ = [
    "DeliveryService",
    "ReceiveOutcome",
    "ReceiveResult",
    "accumulate",
    "receive_delivery",
]
