"""Unit tests for SingleFlightCache."""

import threading

import pytest

from services.market_cache import SingleFlightCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_caches_within_ttl():
    clock = FakeClock()
    cache = SingleFlightCache(ttl_seconds=10, clock=clock)
    calls = []

    def loader():
        calls.append(1)
        return len(calls)

    assert cache.get_or_load("k", loader) == 1
    clock.now = 9.9
    assert cache.get_or_load("k", loader) == 1
    clock.now = 10.1
    assert cache.get_or_load("k", loader) == 2


def test_keys_are_independent():
    cache = SingleFlightCache(ttl_seconds=10)
    assert cache.get_or_load("a", lambda: "A") == "A"
    assert cache.get_or_load("b", lambda: "B") == "B"


def test_errors_are_not_cached():
    cache = SingleFlightCache(ttl_seconds=10)

    def failing():
        raise ValueError("upstream down")

    with pytest.raises(ValueError):
        cache.get_or_load("k", failing)
    assert cache.get_or_load("k", lambda: "ok") == "ok"


def test_invalidate_and_clear():
    cache = SingleFlightCache(ttl_seconds=10)
    cache.get_or_load("a", lambda: 1)
    cache.get_or_load("b", lambda: 1)
    cache.invalidate("a")
    assert cache.get_or_load("a", lambda: 2) == 2
    cache.clear()
    assert cache.get_or_load("b", lambda: 3) == 3


def test_concurrent_misses_share_one_load():
    cache = SingleFlightCache(ttl_seconds=60)
    started = threading.Event()
    finish = threading.Event()
    calls = []
    results = []

    def slow_loader():
        calls.append(1)
        started.set()
        finish.wait(5)
        return "movers"

    def reader():
        results.append(cache.get_or_load("top_movers", slow_loader))

    first = threading.Thread(target=reader)
    first.start()
    started.wait(5)
    others = [threading.Thread(target=reader) for _ in range(5)]
    for t in others:
        t.start()
    finish.set()
    for t in [first, *others]:
        t.join(5)

    assert len(calls) == 1
    assert results == ["movers"] * 6


def test_concurrent_waiters_see_the_error():
    cache = SingleFlightCache(ttl_seconds=60)
    started = threading.Event()
    finish = threading.Event()
    errors = []

    def failing_loader():
        started.set()
        finish.wait(5)
        raise RuntimeError("rate limited")

    def reader():
        try:
            cache.get_or_load("news", failing_loader)
        except RuntimeError as exc:
            errors.append(str(exc))

    first = threading.Thread(target=reader)
    first.start()
    started.wait(5)
    second = threading.Thread(target=reader)
    second.start()
    finish.set()
    first.join(5)
    second.join(5)

    assert errors == ["rate limited", "rate limited"]


def test_expired_entry_dropped_on_read():
    clock = FakeClock()
    cache = SingleFlightCache(ttl_seconds=10, clock=clock)
    cache.get_or_load("a", lambda: 1)
    clock.now = 11

    def failing():
        raise ValueError("upstream down")

    with pytest.raises(ValueError):
        cache.get_or_load("a", failing)
    assert len(cache) == 0


def test_expired_entries_evicted_when_storing():
    clock = FakeClock()
    cache = SingleFlightCache(ttl_seconds=10, clock=clock)
    for i in range(50):
        cache.get_or_load(f"company_news:SYM{i}", lambda: [])
    assert len(cache) == 50

    clock.now = 20
    cache.get_or_load("market_news", lambda: [])
    assert len(cache) == 1
