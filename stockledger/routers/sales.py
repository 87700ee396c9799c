from fastapi import APIRouter, Depends, HTTPException

from stockledger.core.errors import StockLedgerError
from stockledger.dependencies import get_sale_service, require_auth
from stockledger.routers.errors import to_http_exception
from stockledger.schemas.inventory import AdmissionRead, SaleLineRead, SaleLineRequest
from stockledger.services.sale_service import SaleService

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.post("/{sale_id}/lines/check", response_model=AdmissionRead)
def check_sale_line(
    sale_id: int,
    payload: SaleLineRequest,
    service: SaleService = Depends(get_sale_service),
):
    try:
        admission = service.check_line(sale_id, payload.product_id, payload.quantity)
    except StockLedgerError as exc:
        raise to_http_exception(exc) from exc
    return AdmissionRead(
        allowed=admission.allowed,
        store_id=admission.store_id,
        product_id=admission.product_id,
        need=admission.need,
        have=admission.have,
        reason=admission.reason.value if admission.reason else None,
    )


@router.post("/{sale_id}/lines", response_model=SaleLineRead, status_code=201)
def add_sale_line(
    sale_id: int,
    payload: SaleLineRequest,
    service: SaleService = Depends(get_sale_service),
    _auth=Depends(require_auth),
):
    try:
        result = service.add_line(sale_id, payload.product_id, payload.quantity)
    except StockLedgerError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SaleLineRead(
        sale_item_id=result.sale_item_id,
        sale_id=result.sale_id,
        store_id=result.store_id,
        product_id=result.product_id,
        quantity=result.quantity,
        remaining=result.remaining,
    )
