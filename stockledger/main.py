from contextlib import asynccontextmanager

from fastapi import FastAPI

from stockledger.config import Settings, get_settings
from stockledger.core.events import event_bus
from stockledger.core.logging import setup_logging
from stockledger.database import init_db
from stockledger.dependencies import get_alert_manager
from stockledger.routers import (
    alerts_router,
    deliveries_router,
    health_router,
    inventory_router,
    profitability_router,
    sales_router,
)

setup_logging()
settings: Settings = get_settings()

init_db()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    handler = get_alert_manager().handle_quantity_changed
    event_bus.subscribe(handler)
    try:
        yield
    finally:
        event_bus.unsubscribe(handler)


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(health_router)
app.include_router(sales_router)
app.include_router(deliveries_router)
app.include_router(inventory_router)
app.include_router(alerts_router)
app.include_router(profitability_router)


__all__ = ["app"]
