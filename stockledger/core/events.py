from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

_PENDING_EVENTS_KEY = "stockledger.pending_events"


class ChangeCause(str, Enum):
    SALE = "sale"
    DELIVERY = "delivery"


@dataclass(frozen=True)
class QuantityChanged:
    store_id: int
    product_id: int
    quantity: int
    delta: int
    cause: ChangeCause
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_decrease(self) -> bool:
        return self.delta < 0


Handler = Callable[[QuantityChanged], None]


class EventBus:
    """Synchronous in-process dispatch of ledger events.

    A failing handler is logged and skipped; it never reaches the publisher,
    whose own write has already committed.
    """

    def __init__(self) -> None:
        self._handlers: list[Handler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def publish(self, event: QuantityChanged) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s store_id=%s product_id=%s",
                    getattr(handler, "__qualname__", handler),
                    event.cause.value,
                    event.store_id,
                    event.product_id,
                )


event_bus = EventBus()


def queue_event(db, event: QuantityChanged) -> None:
    """Hold an event on the session until its transaction has committed."""
    db.info.setdefault(_PENDING_EVENTS_KEY, []).append(event)


def drain_events(db) -> list[QuantityChanged]:
    return db.info.pop(_PENDING_EVENTS_KEY, [])


def discard_events(db) -> None:
    db.info.pop(_PENDING_EVENTS_KEY, None)


__all__ = [
    "ChangeCause",
    "EventBus",
    "QuantityChanged",
    "discard_events",
    "drain_events",
    "event_bus",
    "queue_event",
]
