import importlib

from stockledger.models.delivery import Delivery
from stockledger.models.expense import Expense
from stockledger.models.inventory import InventoryRow
from stockledger.models.product import Product
from stockledger.models.restock_alert import RestockAlert
from stockledger.models.sales import Sale, SaleItem
from stockledger.models.store_profitability import StoreProfitability
from stockledger.models.stores import Store
from stockledger.models.vendor import Vendor


def import_all_models() -> None:
    for module_name in (
        "stockledger.models.delivery",
        "stockledger.models.expense",
        "stockledger.models.inventory",
        "stockledger.models.product",
        "stockledger.models.restock_alert",
        "stockledger.models.sales",
        "stockledger.models.store_profitability",
        "stockledger.models.stores",
        "stockledger.models.vendor",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Delivery",
    "Expense",
    "InventoryRow",
    "Product",
    "RestockAlert",
    "Sale",
    "SaleItem",
    "Store",
    "StoreProfitability",
    "Vendor",
    "import_all_models",
]
