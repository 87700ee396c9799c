from functools import lru_cache
from typing import Optional

from fastapi import Header

from stockledger.core.security import authenticate_request
from stockledger.database.session import get_db
from stockledger.services.delivery_service import DeliveryService
from stockledger.services.profitability import ProfitabilityAggregator
from stockledger.services.restock_alerts import RestockAlertManager
from stockledger.services.sale_service import SaleService


def require_auth(
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
    authorization: Optional[str] = Header(None),
):
    return authenticate_request(api_key=api_key, authorization=authorization)


@lru_cache
def get_sale_service() -> SaleService:
    return SaleService()


@lru_cache
def get_delivery_service() -> DeliveryService:
    return DeliveryService()


@lru_cache
def get_alert_manager() -> RestockAlertManager:
    return RestockAlertManager()


@lru_cache
def get_profitability_aggregator() -> ProfitabilityAggregator:
    return ProfitabilityAggregator()


__all__ = [
    "get_alert_manager",
    "get_db",
    "get_delivery_service",
    "get_profitability_aggregator",
    "get_sale_service",
    "require_auth",
]
