import json
import logging
import threading
import unittest
from decimal import Decimal

import jwt
from fastapi import HTTPException

from stockledger.config import Settings, parse_store_ids
from stockledger.core.errors import InsufficientStockError, LockContentionError, NoInventoryRowError
from stockledger.core.events import ChangeCause, EventBus, QuantityChanged, drain_events, queue_event
from stockledger.core.locks import KeyLockRegistry
from stockledger.core.logging import JsonFormatter
from stockledger.core.merge import accumulate, overwrite, to_money
from stockledger.core.security import authenticate_request


class MergePolicyTest(unittest.TestCase):
    def test_accumulate_adds_to_existing(self):
        self.assertEqual(accumulate(None, 10), 10)
        self.assertEqual(accumulate(10, 10), 20)

    def test_accumulate_rejects_negative(self):
        with self.assertRaises(ValueError):
            accumulate(5, -1)

    def test_overwrite_takes_incoming(self):
        self.assertEqual(overwrite(Decimal("1.00"), Decimal("2.00")), Decimal("2.00"))
        self.assertEqual(overwrite(None, 3), 3)

    def test_to_money_quantizes(self):
        self.assertEqual(to_money(None), Decimal("0.00"))
        self.assertEqual(to_money(22.000000000000004), Decimal("22.00"))
        self.assertEqual(str(to_money(Decimal("5"))), "5.00")


class KeyLockRegistryTest(unittest.TestCase):
    def test_busy_key_times_out(self):
        registry = KeyLockRegistry(timeout=0.05)
        with registry.hold(1, 10):
            self.assertTrue(registry.is_locked(1, 10))
            with self.assertRaises(LockContentionError) as ctx:
                with registry.hold(1, 10):
                    pass
        self.assertTrue(ctx.exception.retryable)
        self.assertFalse(registry.is_locked(1, 10))

    def test_distinct_keys_do_not_contend(self):
        registry = KeyLockRegistry(timeout=0.05)
        with registry.hold(1, 10):
            with registry.hold(1, 11):
                with registry.hold(2, 10):
                    self.assertTrue(registry.is_locked(2, 10))

    def test_waiter_proceeds_once_released(self):
        registry = KeyLockRegistry(timeout=5)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with registry.hold(1, 10):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(5)
        release.set()
        with registry.hold(1, 10):
            pass
        thread.join(5)


class EventBusTest(unittest.TestCase):
    def _event(self):
        return QuantityChanged(store_id=1, product_id=10, quantity=4, delta=-1, cause=ChangeCause.SALE)

    def test_failing_handler_is_isolated(self):
        bus = EventBus()
        seen = []

        def broken(_event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        with self.assertLogs("stockledger.core.events", level="ERROR"):
            bus.publish(self._event())
        self.assertEqual(len(seen), 1)

    def test_subscribe_is_idempotent(self):
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        bus.subscribe(seen.append)
        bus.publish(self._event())
        self.assertEqual(len(seen), 1)

    def test_queue_and_drain(self):
        class FakeSession:
            def __init__(self):
                self.info = {}

        db = FakeSession()
        event = self._event()
        queue_event(db, event)
        self.assertEqual(drain_events(db), [event])
        self.assertEqual(drain_events(db), [])


class ErrorPayloadTest(unittest.TestCase):
    def test_insufficient_stock_payload(self):
        payload = InsufficientStockError(1, 10, have=2, need=3).to_dict()
        self.assertEqual(payload["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(payload["have"], 2)
        self.assertEqual(payload["need"], 3)
        self.assertEqual(payload["store_id"], 1)

    def test_no_row_message(self):
        error = NoInventoryRowError(2, 11)
        self.assertEqual(str(error), "No inventory row for store_id=2 product_id=11")


class SettingsTest(unittest.TestCase):
    def test_parse_store_ids(self):
        self.assertEqual(parse_store_ids("1, 2,,3"), frozenset({1, 2, 3}))
        self.assertEqual(parse_store_ids(""), frozenset())

    def test_defaults(self):
        settings = Settings(_env_file=None)
        self.assertEqual(settings.alert_watch_stores, frozenset({1, 2}))
        self.assertEqual(settings.profit_report_stores, frozenset({1, 2}))
        self.assertEqual(settings.ALERT_OPEN_THRESHOLD, 100)
        self.assertEqual(settings.ALERT_RECOVERY_THRESHOLD, 25)

    def test_inverted_thresholds_rejected(self):
        with self.assertRaises(ValueError):
            Settings(_env_file=None, ALERT_OPEN_THRESHOLD=10, ALERT_RECOVERY_THRESHOLD=25)


class JsonFormatterTest(unittest.TestCase):
    def test_includes_extra_fields(self):
        record = logging.LogRecord("stockledger", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        record.store_id = 7
        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["message"], "hello world")
        self.assertEqual(payload["store_id"], 7)
        self.assertEqual(payload["level"], "INFO")


class AuthenticateRequestTest(unittest.TestCase):
    def test_open_when_nothing_configured(self):
        self.assertIsNone(authenticate_request(None, None, Settings(_env_file=None)))

    def test_api_key_accepted(self):
        settings = Settings(_env_file=None, API_KEYS="alpha, beta")
        principal = authenticate_request("beta", None, settings)
        self.assertEqual(principal.method, "api_key")

    def test_unknown_api_key_rejected(self):
        settings = Settings(_env_file=None, API_KEYS="alpha")
        with self.assertRaises(HTTPException) as ctx:
            authenticate_request("gamma", None, settings)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_bearer_token_accepted(self):
        settings = Settings(_env_file=None, JWT_SECRET="s3cret-for-tests-only-0123456789abcdef")
        token = jwt.encode({"sub": "clerk-7"}, settings.JWT_SECRET, algorithm="HS256")
        principal = authenticate_request(None, "Bearer {}".format(token), settings)
        self.assertEqual(principal.method, "jwt")
        self.assertEqual(principal.subject, "clerk-7")

    def test_bad_token_rejected(self):
        settings = Settings(_env_file=None, JWT_SECRET="s3cret-for-tests-only-0123456789abcdef")
        with self.assertRaises(HTTPException):
            authenticate_request(None, "Bearer not-a-token", settings)


if __name__ == "__main__":
    unittest.main()
