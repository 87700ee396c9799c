from stockledger.services.delivery_service import DeliveryService, ReceiveOutcome, ReceiveResult
from stockledger.services.profitability import ProfitabilityAggregator, StoreProfitabilityResult
from stockledger.services.restock_alerts import AlertPolicy, AlertState, RestockAlertManager
from stockledger.services.sale_service import CommitResult, SaleService
from stockledger.services.stock_gate import Admission, RejectReason

__all__ = [
    "Admission",
    "AlertPolicy",
    "AlertState",
    "CommitResult",
    "DeliveryService",
    "ProfitabilityAggregator",
    "ReceiveOutcome",
    "ReceiveResult",
    "RejectReason",
    "RestockAlertManager",
    "SaleService",
    "StoreProfitabilityResult",
]
