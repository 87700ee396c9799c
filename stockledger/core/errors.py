"""
Typed exceptions for the stock ledger.

Callers catch by type and read ``code`` for a machine-readable reason; the
stock rejections also carry the numbers involved so an API layer can render
an actionable message without parsing strings.

    StockLedgerError
    +-- StockRejectedError
    |   +-- NoInventoryRowError
    |   +-- InsufficientStockError
    +-- SaleNotFoundError
    +-- LockContentionError
    +-- UpstreamLookupFailure
"""

from __future__ import annotations

from typing import Optional


class StockLedgerError(Exception):
    code: str = "STOCK_LEDGER_ERROR"
    retryable: bool = False

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


class StockRejectedError(StockLedgerError):
    """A sale line was denied stock; the enclosing unit of work must abort."""

    code = "STOCK_REJECTED"

    def __init__(self, message: str, *, store_id: int, product_id: int) -> None:
        super().__init__(message)
        self.store_id = store_id
        self.product_id = product_id

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update(store_id=self.store_id, product_id=self.product_id)
        return payload


class NoInventoryRowError(StockRejectedError):
    code = "NO_INVENTORY_ROW"

    def __init__(self, store_id: int, product_id: int) -> None:
        super().__init__(
            "No inventory row for store_id={} product_id={}".format(store_id, product_id),
            store_id=store_id,
            product_id=product_id,
        )


class InsufficientStockError(StockRejectedError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, store_id: int, product_id: int, have: int, need: int) -> None:
        super().__init__(
            "Insufficient stock: have {}, need {} (store {}, product {})".format(
                have, need, store_id, product_id
            ),
            store_id=store_id,
            product_id=product_id,
        )
        self.have = have
        self.need = need

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update(have=self.have, need=self.need)
        return payload


class SaleNotFoundError(StockLedgerError):
    code = "SALE_NOT_FOUND"

    def __init__(self, sale_id: int) -> None:
        super().__init__("Sale {} does not exist".format(sale_id))
        self.sale_id = sale_id

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["sale_id"] = self.sale_id
        return payload


class LockContentionError(StockLedgerError):
    code = "LOCK_CONTENTION"
    retryable = True

    def __init__(self, store_id: int, product_id: int, timeout: Optional[float] = None) -> None:
        if timeout is None:
            message = "Inventory row store_id={} product_id={} is busy".format(
                store_id, product_id
            )
        else:
            message = "Could not lock inventory row store_id={} product_id={} within {:.2f}s".format(
                store_id, product_id, timeout
            )
        super().__init__(message)
        self.store_id = store_id
        self.product_id = product_id
        self.timeout = timeout

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update(
            store_id=self.store_id,
            product_id=self.product_id,
            retryable=self.retryable,
        )
        return payload


class UpstreamLookupFailure(StockLedgerError):
    code = "UPSTREAM_LOOKUP_FAILURE"

    def __init__(self, source: str, key) -> None:
        super().__init__("Lookup in {} failed for {}".format(source, key))
        self.source = source
        self.key = key


__all__ = [
    "InsufficientStockError",
    "LockContentionError",
    "NoInventoryRowError",
    "SaleNotFoundError",
    "StockLedgerError",
    "StockRejectedError",
    "UpstreamLookupFailure",
]
