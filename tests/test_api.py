import unittest
from datetime import date

from fastapi import FastAPI
from fastapi.testclient import TestClient

from stockledger.core.locks import KeyLockRegistry
from stockledger.dependencies import (
    get_alert_manager,
    get_db,
    get_delivery_service,
    get_profitability_aggregator,
    get_sale_service,
    require_auth,
)
from stockledger.routers import (
    alerts_router,
    deliveries_router,
    health_router,
    inventory_router,
    profitability_router,
    sales_router,
)
from stockledger.services.delivery_service import DeliveryService
from stockledger.services.profitability import ProfitabilityAggregator
from stockledger.services.restock_alerts import AlertPolicy, RestockAlertManager
from stockledger.services.sale_service import SaleService
from tests.support import DatabaseTestCase


class ApiTestCase(DatabaseTestCase, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.seed_catalog()
        self.add_vendor(5, 10, "11.00")

        self.locks = KeyLockRegistry(timeout=0.1)
        self.sale_service = SaleService(self.Session, locks=self.locks, bus=self.bus)
        self.delivery_service = DeliveryService(self.Session, locks=self.locks, bus=self.bus)
        self.alert_manager = RestockAlertManager(
            self.Session,
            policy=AlertPolicy(watch_stores=frozenset({1, 2})),
        )
        self.aggregator = ProfitabilityAggregator(self.Session, store_ids=[1, 2])
        self.bus.subscribe(self.alert_manager.handle_quantity_changed)

        app = FastAPI()
        for router in (
            health_router,
            sales_router,
            deliveries_router,
            inventory_router,
            alerts_router,
            profitability_router,
        ):
            app.include_router(router)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_sale_service] = lambda: self.sale_service
        app.dependency_overrides[get_delivery_service] = lambda: self.delivery_service
        app.dependency_overrides[get_alert_manager] = lambda: self.alert_manager
        app.dependency_overrides[get_profitability_aggregator] = lambda: self.aggregator
        app.dependency_overrides[require_auth] = lambda: None
        self.client = TestClient(app)

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_sale_line_commits_and_decrements(self):
        self.set_stock(1, 10, 150)
        sale_id = self.create_sale(1)

        response = self.client.post(
            "/sales/{}/lines".format(sale_id),
            json={"product_id": 10, "quantity": 4},
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["store_id"], 1)
        self.assertEqual(body["remaining"], 146)
        self.assertEqual(self.stock(1, 10), 146)

        inventory = self.client.get("/inventory/1/10")
        self.assertEqual(inventory.json()["quantity"], 146)

    def test_insufficient_stock_returns_conflict_with_numbers(self):
        self.set_stock(1, 10, 2)
        sale_id = self.create_sale(1)

        response = self.client.post(
            "/sales/{}/lines".format(sale_id),
            json={"product_id": 10, "quantity": 3},
        )

        self.assertEqual(response.status_code, 409)
        detail = response.json()["detail"]
        self.assertEqual(detail["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(detail["have"], 2)
        self.assertEqual(detail["need"], 3)
        self.assertEqual(self.stock(1, 10), 2)

    def test_missing_inventory_row_returns_not_found(self):
        sale_id = self.create_sale(1)
        response = self.client.post(
            "/sales/{}/lines".format(sale_id),
            json={"product_id": 11, "quantity": 1},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"]["code"], "NO_INVENTORY_ROW")

    def test_unknown_sale_returns_not_found(self):
        response = self.client.post("/sales/999/lines", json={"product_id": 10, "quantity": 1})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"]["code"], "SALE_NOT_FOUND")

    def test_non_positive_quantity_is_rejected_by_schema(self):
        sale_id = self.create_sale(1)
        response = self.client.post(
            "/sales/{}/lines".format(sale_id),
            json={"product_id": 10, "quantity": 0},
        )
        self.assertEqual(response.status_code, 422)

    def test_check_reports_without_writing(self):
        self.set_stock(1, 10, 2)
        sale_id = self.create_sale(1)

        response = self.client.post(
            "/sales/{}/lines/check".format(sale_id),
            json={"product_id": 10, "quantity": 5},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["allowed"])
        self.assertEqual(body["have"], 2)
        self.assertEqual(body["need"], 5)
        self.assertEqual(self.stock(1, 10), 2)

    def test_busy_key_returns_service_unavailable(self):
        self.set_stock(1, 10, 150)
        sale_id = self.create_sale(1)

        with self.locks.hold(1, 10):
            response = self.client.post(
                "/sales/{}/lines".format(sale_id),
                json={"product_id": 10, "quantity": 1},
            )

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.headers.get("retry-after"), "1")
        self.assertTrue(response.json()["detail"]["retryable"])
        self.assertEqual(self.stock(1, 10), 150)

    def test_delivery_creates_then_merges(self):
        first = self.client.post(
            "/deliveries",
            json={"store_id": 1, "product_id": 10, "vendor_id": 5, "quantity": 40},
        )
        second = self.client.post(
            "/deliveries",
            json={"store_id": 1, "product_id": 10, "vendor_id": 5, "quantity": 15},
        )

        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["outcome"], "NEW_ROW")
        self.assertEqual(second.json()["outcome"], "MERGED_ROW")
        self.assertEqual(second.json()["quantity"], 55)
        self.assertEqual(self.stock(1, 10), 55)

    def test_alert_opens_on_sale_and_closes_on_delivery(self):
        self.set_stock(1, 10, 100)
        sale_id = self.create_sale(1)

        self.client.post("/sales/{}/lines".format(sale_id), json={"product_id": 10, "quantity": 90})
        alerts = self.client.get("/alerts").json()
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0]["product_name"], "Espresso Beans")
        self.assertEqual(alerts[0]["quantity"], 10)

        self.client.post(
            "/deliveries",
            json={"store_id": 1, "product_id": 10, "vendor_id": 5, "quantity": 20},
        )
        self.assertEqual(self.client.get("/alerts").json(), [])

    def test_alert_filter_by_store(self):
        self.set_stock(1, 10, 100)
        self.set_stock(2, 10, 100)
        for store_id in (1, 2):
            sale_id = self.create_sale(store_id)
            self.client.post("/sales/{}/lines".format(sale_id), json={"product_id": 10, "quantity": 1})

        alerts = self.client.get("/alerts", params={"store_id": 2}).json()
        self.assertEqual([alert["store_id"] for alert in alerts], [2])

    def test_reconcile_endpoint(self):
        response = self.client.post("/alerts/reconcile")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "completed", "closed": 0})

    def test_profitability_recompute_and_read(self):
        self.set_stock(1, 10, 100)
        sale_id = self.create_sale(1, sale_date=date(2024, 3, 15))
        self.client.post("/sales/{}/lines".format(sale_id), json={"product_id": 10, "quantity": 2})

        response = self.client.post("/profitability/2024/3")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual([store["store_id"] for store in body["stores"]], [1, 2])

        rows = self.client.get("/profitability/2024/3").json()
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]["store_profitability_id"], 20240300001)
        self.assertEqual(float(rows[0]["total_revenue"]), 37.0)

    def test_profitability_rejects_bad_month(self):
        response = self.client.post("/profitability/2024/13")
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
