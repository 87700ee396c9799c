from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.dependencies import get_db, get_profitability_aggregator, require_auth
from stockledger.schemas.profitability import RecomputeRead, StoreProfitabilityRead, StoreRecomputeRead
from stockledger.services.profitability import ProfitabilityAggregator, list_store_profitability

router = APIRouter(prefix="/profitability", tags=["Profitability"])


@router.post("/{year}/{month}", response_model=RecomputeRead)
def recompute_profitability(
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
    aggregator: ProfitabilityAggregator = Depends(get_profitability_aggregator),
    _auth=Depends(require_auth),
):
    try:
        results = aggregator.recompute(year, month)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    status = "completed" if all(result.ok for result in results) else "partial"
    return RecomputeRead(
        status=status,
        year=year,
        month=month,
        stores=[StoreRecomputeRead.model_validate(result) for result in results],
    )


@router.get("/{year}/{month}", response_model=List[StoreProfitabilityRead])
def read_profitability(
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
    db: Session = Depends(get_db),
):
    return list_store_profitability(db, year, month)
