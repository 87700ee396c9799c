from stockledger.routers.alerts import router as alerts_router
from stockledger.routers.deliveries import router as deliveries_router
from stockledger.routers.health import router as health_router
from stockledger.routers.inventory import router as inventory_router
from stockledger.routers.profitability import router as profitability_router
from stockledger.routers.sales import router as sales_router

__all__ = [
    "alerts_router",
    "deliveries_router",
    "health_router",
    "inventory_router",
    "profitability_router",
    "sales_router",
]
