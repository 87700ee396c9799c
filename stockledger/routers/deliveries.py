from fastapi import APIRouter, Depends, HTTPException

from stockledger.core.errors import StockLedgerError
from stockledger.dependencies import get_delivery_service, require_auth
from stockledger.routers.errors import to_http_exception
from stockledger.schemas.inventory import DeliveryRead, DeliveryRequest
from stockledger.services.delivery_service import DeliveryService

router = APIRouter(prefix="/deliveries", tags=["Deliveries"])


@router.post("", response_model=DeliveryRead, status_code=201)
def receive_delivery(
    payload: DeliveryRequest,
    service: DeliveryService = Depends(get_delivery_service),
    _auth=Depends(require_auth),
):
    try:
        result = service.receive(
            store_id=payload.store_id,
            product_id=payload.product_id,
            vendor_id=payload.vendor_id,
            quantity=payload.quantity,
            delivery_date=payload.delivery_date,
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return DeliveryRead(
        outcome=result.outcome.value,
        delivery_id=result.delivery_id,
        store_id=result.store_id,
        product_id=result.product_id,
        received=result.received,
        quantity=result.quantity,
    )
