from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.dependencies import get_alert_manager, get_db, require_auth
from stockledger.schemas.alert import ReconcileRead, RestockAlertRead
from stockledger.services.restock_alerts import RestockAlertManager, list_open_alerts

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("", response_model=List[RestockAlertRead])
def read_open_alerts(
    store_id: Optional[int] = Query(None, description="Only alerts for this store"),
    db: Session = Depends(get_db),
):
    return list_open_alerts(db, store_id=store_id)


@router.post("/reconcile", response_model=ReconcileRead)
def reconcile_alerts(
    manager: RestockAlertManager = Depends(get_alert_manager),
    _auth=Depends(require_auth),
):
    try:
        closed = manager.reconcile_all()
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ReconcileRead(status="completed", closed=closed)
