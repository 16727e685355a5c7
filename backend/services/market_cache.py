"""In-process TTL cache with single-flight loading for market data."""

import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SingleFlightCache:
    """Caches loader results per key for ``ttl_seconds``.

    Concurrent misses on the same key share one loader call: the first
    caller loads, later callers wait on its result.  A loader exception is
    raised to every waiter and nothing is cached, so the next call loads
    again.  Expired entries are dropped when read and whenever a new value
    is stored, so keys that are never requested again do not accumulate.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._values: dict[str, tuple[Any, float]] = {}
        self._inflight: dict[str, Future] = {}

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        with self._lock:
            cached = self._values.get(key)
            if cached is not None:
                if cached[1] > self._clock():
                    return cached[0]
                del self._values[key]
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = self._inflight[key] = Future()

        if not owner:
            logger.debug("Waiting on in-flight load for %s", key)
            return future.result()

        try:
            value = loader()
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._values[key] = (value, now + self._ttl)
            self._inflight.pop(key, None)
        future.set_result(value)
        return value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def _evict_expired(self, now: float) -> None:
        """Drop every expired entry.  Caller holds ``_lock``."""
        expired = [k for k, (_, expires_at) in self._values.items() if expires_at <= now]
        for k in expired:
            del self._values[k]
