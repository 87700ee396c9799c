from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger import __version__
from stockledger.config import get_settings
from stockledger.dependencies import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "app": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "time": datetime.now(timezone.utc).isoformat(),
    }
