from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from stockledger.core.errors import LockContentionError

logger = logging.getLogger(__name__)

InventoryKey = tuple[int, int]


class KeyLockRegistry:
    """One mutex per (store_id, product_id).

    Holders of different keys never wait on each other. Waiting on a busy key
    is bounded by ``timeout`` and surfaces as ``LockContentionError``.
    """

    def __init__(self, *, timeout: float = 5.0) -> None:
        self._timeout = float(timeout)
        self._guard = threading.Lock()
        self._locks: dict[InventoryKey, threading.Lock] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    def _lock_for(self, key: InventoryKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, store_id: int, product_id: int, *, timeout: Optional[float] = None) -> Iterator[None]:
        wait = self._timeout if timeout is None else float(timeout)
        lock = self._lock_for((store_id, product_id))
        if not lock.acquire(timeout=wait):
            logger.warning(
                "Lock contention on inventory store_id=%s product_id=%s after %.2fs",
                store_id,
                product_id,
                wait,
            )
            raise LockContentionError(store_id, product_id, wait)
        try:
            yield
        finally:
            lock.release()

    def is_locked(self, store_id: int, product_id: int) -> bool:
        with self._guard:
            lock = self._locks.get((store_id, product_id))
        return lock is not None and lock.locked()


_default_registry: Optional[KeyLockRegistry] = None
_default_registry_guard = threading.Lock()


def get_lock_registry() -> KeyLockRegistry:
    global _default_registry
    with _default_registry_guard:
        if _default_registry is None:
            from stockledger.config import get_settings

            _default_registry = KeyLockRegistry(timeout=get_settings().LOCK_TIMEOUT_SECONDS)
        return _default_registry


__all__ = ["InventoryKey", "KeyLockRegistry", "get_lock_registry"]
