from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.config import get_settings
from stockledger.core.dates import month_bounds
from stockledger.core.errors import StockLedgerError
from stockledger.core.merge import overwrite, to_money
from stockledger.database import SessionLocal, begin_write
from stockledger.models.delivery import Delivery
from stockledger.models.expense import Expense
from stockledger.models.product import Product
from stockledger.models.sales import Sale, SaleItem
from stockledger.models.store_profitability import StoreProfitability
from stockledger.models.vendor import Vendor

logger = logging.getLogger(__name__)

_STORE_ID_SPAN = 100_000


def validate_store_id(store_id: int) -> int:
    if not 0 <= store_id < _STORE_ID_SPAN:
        raise ValueError("store_id must be between 0 and {}".format(_STORE_ID_SPAN - 1))
    return store_id


def profitability_id(year: int, month: int, store_id: int) -> int:
    return (year * 100 + month) * _STORE_ID_SPAN + validate_store_id(store_id)


@dataclass(frozen=True)
class StoreTotals:
    revenue: Decimal
    cost_of_goods: Decimal
    operating_expense: Decimal

    @property
    def total_expense(self) -> Decimal:
        return to_money(self.cost_of_goods + self.operating_expense)

    @property
    def net_profit(self) -> Decimal:
        return to_money(self.revenue - self.total_expense)


@dataclass(frozen=True)
class StoreProfitabilityResult:
    store_id: int
    profit_month: date
    store_profitability_id: int
    total_revenue: Optional[Decimal] = None
    total_expense: Optional[Decimal] = None
    net_profit: Optional[Decimal] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def store_revenue(db: Session, store_id: int, start: date, end: date) -> Decimal:
    value = db.execute(
        select(func.sum(SaleItem.quantity * Product.unit_price))
        .select_from(Sale)
        .join(SaleItem, SaleItem.sale_id == Sale.id)
        .join(Product, Product.id == SaleItem.product_id)
        .where(
            Sale.store_id == store_id,
            Sale.sale_date >= start,
            Sale.sale_date < end,
        )
    ).scalar_one()
    return to_money(value)


def store_cost_of_goods(db: Session, store_id: int, start: date, end: date) -> Decimal:
    window = (
        Delivery.store_id == store_id,
        Delivery.delivery_date >= start,
        Delivery.delivery_date < end,
    )
    value = db.execute(
        select(func.sum(Delivery.quantity * Vendor.purchase_price))
        .select_from(Delivery)
        .join(
            Vendor,
            (Vendor.vendor_id == Delivery.vendor_id) & (Vendor.product_id == Delivery.product_id),
        )
        .where(*window)
    ).scalar_one()

    unpriced = db.execute(
        select(func.count(Delivery.id))
        .select_from(Delivery)
        .outerjoin(
            Vendor,
            (Vendor.vendor_id == Delivery.vendor_id) & (Vendor.product_id == Delivery.product_id),
        )
        .where(*window, Vendor.vendor_id.is_(None))
    ).scalar_one()
    if unpriced:
        logger.warning(
            "%d delivery(ies) for store %s between %s and %s have no vendor price; "
            "excluded from cost of goods",
            unpriced,
            store_id,
            start,
            end,
        )
    return to_money(value)


def store_operating_expense(db: Session, store_id: int, start: date, end: date) -> Decimal:
    value = db.execute(
        select(func.sum(Expense.amount)).where(
            Expense.store_id == store_id,
            Expense.expense_date >= start,
            Expense.expense_date < end,
        )
    ).scalar_one()
    return to_money(value)


def compute_store_totals(db: Session, store_id: int, start: date, end: date) -> StoreTotals:
    return StoreTotals(
        revenue=store_revenue(db, store_id, start, end),
        cost_of_goods=store_cost_of_goods(db, store_id, start, end),
        operating_expense=store_operating_expense(db, store_id, start, end),
    )


def upsert_store_profitability(
    db: Session,
    *,
    year: int,
    month: int,
    store_id: int,
    totals: StoreTotals,
) -> StoreProfitability:
    row_id = profitability_id(year, month, store_id)
    values = {
        "store_id": store_id,
        "profit_month": date(year, month, 1),
        "total_revenue": totals.revenue,
        "total_expense": totals.total_expense,
        "net_profit": totals.net_profit,
        "updated_at": datetime.now(timezone.utc),
    }
    row = db.get(StoreProfitability, row_id)
    if row is None:
        row = StoreProfitability(store_profitability_id=row_id, **values)
        db.add(row)
    else:
        for field_name, value in values.items():
            setattr(row, field_name, overwrite(getattr(row, field_name), value))
    db.flush()
    return row


class ProfitabilityAggregator:
    """Monthly revenue, expense and net profit per reporting store.

    Every run recomputes the whole month from sales, deliveries and expenses
    and overwrites the stored rows, so repeated runs for the same month leave
    exactly one row per store.

    The scan runs as a plain reader and takes no write lock, so sales and
    deliveries keep committing while a month is summed. Only the short write
    of the result rows claims the writer slot.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        store_ids: Optional[Iterable[int]] = None,
    ) -> None:
        self._session_factory = session_factory
        if store_ids is None:
            store_ids = get_settings().profit_report_stores
        self._store_ids = sorted(validate_store_id(store_id) for store_id in set(store_ids))

    @property
    def store_ids(self) -> list[int]:
        return list(self._store_ids)

    def recompute(self, year: int, month: int) -> list[StoreProfitabilityResult]:
        start, end = month_bounds(year, month)
        scanned = self.scan(start, end)

        results = []
        db = self._session_factory()
        try:
            begin_write(db)
            for store_id in self._store_ids:
                outcome = scanned[store_id]
                if isinstance(outcome, StoreTotals):
                    results.append(self._write_store(db, year, month, store_id, outcome))
                else:
                    results.append(self._failed(year, month, store_id, outcome))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

        failed = [result.store_id for result in results if not result.ok]
        logger.info(
            "Profitability recomputed for %04d-%02d: %d store(s), %d failed",
            year,
            month,
            len(results),
            len(failed),
        )
        return results

    def scan(self, start: date, end: date) -> dict[int, Union[StoreTotals, Exception]]:
        """Sum every reporting store over ``[start, end)``; failures are kept per store."""
        scanned: dict[int, Union[StoreTotals, Exception]] = {}
        db = self._session_factory()
        try:
            for store_id in self._store_ids:
                try:
                    scanned[store_id] = compute_store_totals(db, store_id, start, end)
                except (SQLAlchemyError, StockLedgerError) as exc:
                    db.rollback()
                    logger.exception("Profitability scan for store %s from %s failed", store_id, start)
                    scanned[store_id] = exc
        finally:
            db.rollback()
            db.close()
        return scanned

    def _write_store(
        self,
        db: Session,
        year: int,
        month: int,
        store_id: int,
        totals: StoreTotals,
    ) -> StoreProfitabilityResult:
        savepoint = db.begin_nested()
        try:
            row = upsert_store_profitability(
                db,
                year=year,
                month=month,
                store_id=store_id,
                totals=totals,
            )
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            logger.exception(
                "Profitability for store %s in %04d-%02d failed",
                store_id,
                year,
                month,
            )
            return self._failed(year, month, store_id, exc)

        return StoreProfitabilityResult(
            store_id=store_id,
            profit_month=row.profit_month,
            store_profitability_id=row.store_profitability_id,
            total_revenue=to_money(row.total_revenue),
            total_expense=to_money(row.total_expense),
            net_profit=to_money(row.net_profit),
        )

    @staticmethod
    def _failed(year: int, month: int, store_id: int, exc: Exception) -> StoreProfitabilityResult:
        return StoreProfitabilityResult(
            store_id=store_id,
            profit_month=date(year, month, 1),
            store_profitability_id=profitability_id(year, month, store_id),
            error="{}: {}".format(type(exc).__name__, exc),
        )


def list_store_profitability(db: Session, year: int, month: int) -> list[StoreProfitability]:
    start, _ = month_bounds(year, month)
    return list(
        db.execute(
            select(StoreProfitability)
            .where(StoreProfitability.profit_month == start)
            .order_by(StoreProfitability.store_id)
        ).scalars()
    )


__all__ = [
    "ProfitabilityAggregator",
    "StoreProfitabilityResult",
    "StoreTotals",
    "compute_store_totals",
    "list_store_profitability",
    "profitability_id",
    "store_cost_of_goods",
    "store_operating_expense",
    "store_revenue",
    "upsert_store_profitability",
    "validate_store_id",
]
