"""Restock alert lifecycle.

Each (product, store) pair is either ``NO_ALERT`` or ``ALERT_OPEN``. A sale
that leaves a watched store below the open threshold opens the alert once;
further drops leave it and its snapshot untouched. A delivery that brings the
pair back to the recovery threshold closes it. The recovery threshold sits
below the open threshold.

Alert bookkeeping runs after the ledger write has committed. Failures here
are logged and never reach the sale or delivery that triggered them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.config import Settings, get_settings
from stockledger.core.errors import UpstreamLookupFailure
from stockledger.core.events import QuantityChanged
from stockledger.database import SessionLocal, begin_write, session_scope
from stockledger.models.inventory import InventoryRow
from stockledger.models.product import Product
from stockledger.models.restock_alert import RestockAlert
from stockledger.models.sales import Sale, SaleItem
from stockledger.services.ledger import get_inventory_row

logger = logging.getLogger(__name__)


class AlertState(str, Enum):
    NO_ALERT = "NO_ALERT"
    ALERT_OPEN = "ALERT_OPEN"


@dataclass(frozen=True)
class AlertPolicy:
    watch_stores: frozenset[int]
    open_threshold: int = 100
    recovery_threshold: int = 25

    def __post_init__(self):
        if self.recovery_threshold > self.open_threshold:
            raise ValueError("recovery_threshold must not exceed open_threshold")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AlertPolicy":
        settings = settings or get_settings()
        return cls(
            watch_stores=settings.alert_watch_stores,
            open_threshold=settings.ALERT_OPEN_THRESHOLD,
            recovery_threshold=settings.ALERT_RECOVERY_THRESHOLD,
        )

    def is_watched(self, store_id: int) -> bool:
        return store_id in self.watch_stores


def next_alert_state(
    state: AlertState,
    quantity: int,
    *,
    decreased: bool,
    store_id: int,
    policy: AlertPolicy,
) -> AlertState:
    if state is AlertState.NO_ALERT:
        if decreased and policy.is_watched(store_id) and quantity < policy.open_threshold:
            return AlertState.ALERT_OPEN
        return state
    # Open alerts are latched: only a recovery clears them.
    if not decreased and quantity >= policy.recovery_threshold:
        return AlertState.NO_ALERT
    return state


def lookup_product_name(db: Session, product_id: int) -> str:
    try:
        name = db.execute(select(Product.name).where(Product.id == product_id)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise UpstreamLookupFailure("products", product_id) from exc
    if name is None:
        raise UpstreamLookupFailure("products", product_id)
    return name


def latest_sale_date(db: Session, store_id: int, product_id: int) -> Optional[date]:
    return db.execute(
        select(Sale.sale_date)
        .join(SaleItem, SaleItem.sale_id == Sale.id)
        .where(Sale.store_id == store_id, SaleItem.product_id == product_id)
        .order_by(Sale.sale_date.desc())
        .limit(1)
    ).scalar_one_or_none()


def get_alert(db: Session, store_id: int, product_id: int) -> Optional[RestockAlert]:
    return db.execute(
        select(RestockAlert).where(
            RestockAlert.product_id == product_id,
            RestockAlert.store_id == store_id,
        )
    ).scalar_one_or_none()


def current_state(db: Session, store_id: int, product_id: int) -> AlertState:
    if get_alert(db, store_id, product_id) is None:
        return AlertState.NO_ALERT
    return AlertState.ALERT_OPEN


def list_open_alerts(db: Session, store_id: Optional[int] = None) -> list[RestockAlert]:
    stmt = select(RestockAlert).order_by(RestockAlert.store_id, RestockAlert.product_id)
    if store_id is not None:
        stmt = stmt.where(RestockAlert.store_id == store_id)
    return list(db.execute(stmt).scalars())


class RestockAlertManager:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        policy: Optional[AlertPolicy] = None,
        product_name_lookup: Callable[[Session, int], str] = lookup_product_name,
    ) -> None:
        self._session_factory = session_factory
        self._policy = policy or AlertPolicy.from_settings()
        self._lookup_product_name = product_name_lookup

    @property
    def policy(self) -> AlertPolicy:
        return self._policy

    def open_check(self, db: Session, store_id: int, product_id: int, new_quantity: int) -> bool:
        state = current_state(db, store_id, product_id)
        target = next_alert_state(
            state,
            new_quantity,
            decreased=True,
            store_id=store_id,
            policy=self._policy,
        )
        if target is state:
            return False

        # Never open on stock that a later increase has already recovered.
        row = get_inventory_row(db, store_id, product_id)
        if (
            row is not None
            and row.quantity > new_quantity
            and row.quantity >= self._policy.recovery_threshold
        ):
            logger.info(
                "Restock alert skipped: store=%s product=%s recovered to %s",
                store_id,
                product_id,
                row.quantity,
            )
            return False

        try:
            product_name = self._lookup_product_name(db, product_id)
        except UpstreamLookupFailure:
            logger.warning(
                "Opening restock alert without product name (store=%s product=%s)",
                store_id,
                product_id,
                exc_info=True,
            )
            product_name = None

        alert = RestockAlert(
            product_id=product_id,
            store_id=store_id,
            product_name=product_name,
            quantity=new_quantity,
            alert_date=latest_sale_date(db, store_id, product_id),
        )
        savepoint = db.begin_nested()
        try:
            db.add(alert)
            db.flush()
            savepoint.commit()
        except IntegrityError:
            # Opened concurrently; the first snapshot stays.
            savepoint.rollback()
            return False

        logger.info(
            "Restock alert opened: store=%s product=%s qty=%s",
            store_id,
            product_id,
            new_quantity,
        )
        return True

    def close_check(self, db: Session, store_id: int, product_id: int) -> bool:
        alert = get_alert(db, store_id, product_id)
        if alert is None:
            return False
        row = get_inventory_row(db, store_id, product_id)
        if row is None:
            return False

        target = next_alert_state(
            AlertState.ALERT_OPEN,
            row.quantity,
            decreased=False,
            store_id=store_id,
            policy=self._policy,
        )
        if target is AlertState.ALERT_OPEN:
            return False

        db.delete(alert)
        db.flush()
        logger.info(
            "Restock alert closed: store=%s product=%s qty=%s",
            store_id,
            product_id,
            row.quantity,
        )
        return True

    def reconcile(self, db: Session) -> int:
        """Close every alert whose pair has recovered, whatever touched it last."""
        recovered = exists().where(
            InventoryRow.product_id == RestockAlert.product_id,
            InventoryRow.store_id == RestockAlert.store_id,
            InventoryRow.quantity >= self._policy.recovery_threshold,
        )
        result = db.execute(
            delete(RestockAlert).where(recovered).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def reconcile_all(self) -> int:
        with session_scope(self._session_factory, write=True) as db:
            closed = self.reconcile(db)
        logger.info("Restock alert reconciliation closed %d alert(s)", closed)
        return closed

    def handle_quantity_changed(self, event: QuantityChanged) -> None:
        if not event.delta:
            return
        db = self._session_factory()
        try:
            begin_write(db)
            if event.is_decrease:
                self.open_check(db, event.store_id, event.product_id, event.quantity)
            else:
                self.close_check(db, event.store_id, event.product_id)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Restock alert bookkeeping failed for store=%s product=%s; "
                "reconciliation will pick it up",
                event.store_id,
                event.product_id,
            )
        finally:
            db.close()


__all__ = [
    "AlertPolicy",
    "AlertState",
    "RestockAlertManager",
    "current_state",
    "get_alert",
    "latest_sale_date",
    "list_open_alerts",
    "lookup_product_name",
    "next_alert_state",
]
