import shutil
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

from sqlalchemy.orm import sessionmaker

from stockledger.core.events import EventBus
from stockledger.core.locks import KeyLockRegistry
from stockledger.database import init_db, make_engine
from stockledger.models import InventoryRow, Product, Sale, Store, Vendor


class DatabaseTestCase:
    """Mixin giving each test its own file-backed SQLite database."""

    def setUp(self):
        super().setUp()
        self._tmp_dir = tempfile.mkdtemp(prefix="stockledger-test-")
        self.db_path = Path(self._tmp_dir) / "test.db"
        self.engine = make_engine("sqlite:///{}".format(self.db_path))
        init_db(bind=self.engine)
        self.Session = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        self.locks = KeyLockRegistry(timeout=5.0)
        self.bus = EventBus()

    def tearDown(self):
        self.engine.dispose()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)
        super().tearDown()

    def seed_catalog(self, store_ids=(1, 2, 3), products=((10, "Espresso Beans", "18.50"), (11, "Oat Milk", "2.40"))):
        db = self.Session()
        try:
            for store_id in store_ids:
                db.add(Store(id=store_id, name="Store {}".format(store_id), city="Springfield"))
            for product_id, name, unit_price in products:
                db.add(Product(id=product_id, name=name, unit_price=Decimal(unit_price)))
            db.commit()
        finally:
            db.close()

    def add_vendor(self, vendor_id, product_id, purchase_price):
        db = self.Session()
        try:
            db.add(
                Vendor(
                    vendor_id=vendor_id,
                    product_id=product_id,
                    vendor_name="Vendor {}".format(vendor_id),
                    purchase_price=Decimal(purchase_price),
                )
            )
            db.commit()
        finally:
            db.close()

    def set_stock(self, store_id, product_id, quantity):
        db = self.Session()
        try:
            row = db.get(InventoryRow, (store_id, product_id))
            if row is None:
                db.add(InventoryRow(store_id=store_id, product_id=product_id, quantity=quantity))
            else:
                row.quantity = quantity
            db.commit()
        finally:
            db.close()

    def stock(self, store_id, product_id):
        db = self.Session()
        try:
            row = db.get(InventoryRow, (store_id, product_id))
            return None if row is None else row.quantity
        finally:
            db.close()

    def create_sale(self, store_id, sale_date=None):
        db = self.Session()
        try:
            sale = Sale(store_id=store_id, sale_date=sale_date or date(2024, 3, 15))
            db.add(sale)
            db.commit()
            return sale.id
        finally:
            db.close()
