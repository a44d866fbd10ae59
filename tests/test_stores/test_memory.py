"""Tests for the in-memory store."""

from __future__ import annotations

import threading

import pytest

from icebox.exceptions import ConfigurationError, NotFoundError
from icebox.models import StoreConfig
from icebox.stores import MemoryStore


@pytest.fixture()
def store(clock):
    return MemoryStore(StoreConfig(store="memory", timeout=60), clock=clock)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_timeout_is_required(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout"):
            MemoryStore(StoreConfig(store="memory"))

    def test_zero_timeout_is_accepted(self) -> None:
        assert MemoryStore(StoreConfig(timeout=0)).timeout == 0

    def test_logs_configuration_when_logger_given(self, sink) -> None:
        MemoryStore(StoreConfig(timeout=60), logger=sink)
        assert sink.messages("info") == ["Cache: Using MemoryStore with timeout 60 sec"]

    def test_silent_without_logger(self, store) -> None:
        store.set("k", 1)
        store.get("k")  # NullSink swallows everything


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class TestContract:
    def test_set_then_get(self, store) -> None:
        assert store.set("k", {"a": 1}) is True
        assert store.get("k") == {"a": 1}

    def test_unknown_key(self, store) -> None:
        assert store.exists("nope") is False
        assert store.stale("nope") is True

    def test_get_unknown_key_raises_not_found(self, store) -> None:
        with pytest.raises(NotFoundError):
            store.get("nope")

    def test_set_overwrites(self, store, clock) -> None:
        store.set("k", "first")
        clock.advance(50)
        store.set("k", "second")
        clock.advance(50)
        assert len(store) == 1
        assert store.get("k") == "second"
        # Timestamp of the second write wins.
        assert store.stale("k") is False

    def test_stale_after_timeout(self, store, clock) -> None:
        store.set("k", 1)
        clock.advance(60)
        assert store.stale("k") is False
        clock.advance(1)
        assert store.stale("k") is True

    def test_stale_entry_still_exists_and_reads(self, store, clock) -> None:
        store.set("k", 1)
        clock.advance(3600)
        assert store.exists("k") is True
        assert store.stale("k") is True
        assert store.get("k") == 1

    def test_staleness_is_monotonic(self, store, clock) -> None:
        store.set("k", 1)
        clock.advance(61)
        for _ in range(5):
            store.get("k")
            assert store.stale("k") is True
            clock.advance(10)

    def test_per_entry_ttl(self, store, clock) -> None:
        store.set("short", 1, ttl=5)
        store.set("default", 2)
        clock.advance(6)
        assert store.stale("short") is True
        assert store.stale("default") is False

    def test_logs_reads_and_writes(self, clock, sink) -> None:
        store = MemoryStore(StoreConfig(timeout=60), logger=sink, clock=clock)
        store.set("abc", 1)
        store.get("abc")
        with pytest.raises(NotFoundError):
            store.get("xyz")
        assert sink.messages("info")[1:] == [
            "Cache: set (abc)",
            "Cache: hit (abc)",
            "Cache: miss (xyz)",
        ]


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_concurrent_writers_leave_one_entry(self, store) -> None:
        def writer(n: int) -> None:
            for i in range(200):
                store.set("shared", (n, i))
                store.get("shared")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 1
        n, i = store.get("shared")
        assert i == 199

    def test_lookups_of_unknown_keys_do_not_grow_state(self, store) -> None:
        locks_before = len(store._locks)
        for i in range(10_000):
            assert store.exists(f"missing-{i}") is False
            assert store.stale(f"missing-{i}") is True
        assert len(store) == 0
        assert len(store._locks) == locks_before
