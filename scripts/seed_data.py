import argparse
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

from sqlalchemy import delete, select

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from stockledger.core.logging import setup_logging
from stockledger.database import init_db, session_scope
from stockledger.models import (
    Delivery,
    Expense,
    InventoryRow,
    Product,
    RestockAlert,
    Sale,
    SaleItem,
    Store,
    StoreProfitability,
    Vendor,
)
from stockledger.services.delivery_service import receive_delivery


def parse_args():
    parser = argparse.ArgumentParser(description="Seed sample stores, products and stock.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding.",
    )
    return parser.parse_args()


def reset(db):
    for model in (
        RestockAlert,
        StoreProfitability,
        SaleItem,
        Sale,
        Delivery,
        Expense,
        InventoryRow,
        Vendor,
        Product,
        Store,
    ):
        db.execute(delete(model))


def seed(db):
    db.add_all(
        [
            Store(id=1, name="Downtown", city="Springfield"),
            Store(id=2, name="Riverside", city="Springfield"),
            Store(id=3, name="Outlet", city="Shelbyville"),
        ]
    )
    db.add_all(
        [
            Product(id=1, name="Espresso Beans 1kg", unit_price=Decimal("18.50")),
            Product(id=2, name="Oat Milk 1L", unit_price=Decimal("2.40")),
            Product(id=3, name="Paper Cups (50)", unit_price=Decimal("4.99")),
        ]
    )
    db.add_all(
        [
            Vendor(vendor_id=1, product_id=1, vendor_name="Roastery Co", purchase_price=Decimal("11.00")),
            Vendor(vendor_id=2, product_id=2, vendor_name="Dairy Alt", purchase_price=Decimal("1.10")),
            Vendor(vendor_id=2, product_id=3, vendor_name="Dairy Alt", purchase_price=Decimal("2.25")),
        ]
    )
    db.flush()

    today = date.today()
    for store_id in (1, 2, 3):
        for vendor_id, product_id, quantity in ((1, 1, 150), (2, 2, 300), (2, 3, 120)):
            receive_delivery(
                db,
                store_id=store_id,
                product_id=product_id,
                vendor_id=vendor_id,
                quantity=quantity,
                delivery_date=today,
            )
    db.add(Expense(store_id=1, expense_date=today, amount=Decimal("1200.00"), description="Rent"))
    db.add(Expense(store_id=2, expense_date=today, amount=Decimal("950.00"), description="Rent"))


def main():
    setup_logging()
    args = parse_args()
    init_db()

    if args.reset:
        with session_scope() as db:
            reset(db)

    with session_scope() as db:
        if db.execute(select(Store.id).limit(1)).first():
            print("Seed skipped: stores already exist.")
            return
        seed(db)
    print("Seed complete.")


if __name__ == "__main__":
    main()
