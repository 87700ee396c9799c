from fastapi import HTTPException, status

from stockledger.core.errors import (
    InsufficientStockError,
    LockContentionError,
    NoInventoryRowError,
    SaleNotFoundError,
    StockLedgerError,
)

_STATUS_BY_ERROR = (
    (SaleNotFoundError, status.HTTP_404_NOT_FOUND),
    (NoInventoryRowError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (LockContentionError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: StockLedgerError) -> HTTPException:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, candidate in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = candidate
            break
    headers = {"Retry-After": "1"} if exc.retryable else None
    return HTTPException(status_code=status_code, detail=exc.to_dict(), headers=headers)
