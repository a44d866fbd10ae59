"""Tests for the redis store, using a mocked client."""

from __future__ import annotations

import pickle
from unittest.mock import MagicMock, patch

import pytest
import redis

from icebox.exceptions import NotFoundError, StorageIOError
from icebox.models import StoreConfig
from icebox.stores import RedisStore


@pytest.fixture()
def client() -> MagicMock:
    return MagicMock(spec=redis.Redis)


@pytest.fixture()
def store(client, clock) -> RedisStore:
    return RedisStore(StoreConfig(store="redis", timeout=60), clock=clock, client=client)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_connects_to_default_url(self) -> None:
        with patch("icebox.stores.redis_store.redis.Redis.from_url") as from_url:
            store = RedisStore(StoreConfig(store="redis", timeout=60))
        from_url.assert_called_once_with(
            "redis://localhost:6379/0", socket_timeout=1.0, socket_connect_timeout=1.0
        )
        assert store.location == "redis://localhost:6379/0"

    def test_location_and_socket_timeout_options(self) -> None:
        config = StoreConfig(
            store="redis", timeout=60, location="redis://cache:6380/2", socket_timeout=0.25
        )
        with patch("icebox.stores.redis_store.redis.Redis.from_url") as from_url:
            RedisStore(config)
        from_url.assert_called_once_with(
            "redis://cache:6380/2", socket_timeout=0.25, socket_connect_timeout=0.25
        )

    def test_injected_client_skips_connect(self, client) -> None:
        with patch("icebox.stores.redis_store.redis.Redis.from_url") as from_url:
            RedisStore(StoreConfig(timeout=60), client=client)
        from_url.assert_not_called()

    def test_logs_location(self, client, sink) -> None:
        RedisStore(StoreConfig(timeout=60), logger=sink, client=client)
        assert sink.messages("info") == [
            "Cache: Using RedisStore in location: redis://localhost:6379/0 with timeout 60 sec"
        ]


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class TestContract:
    def test_set_uses_server_expiry(self, store, client) -> None:
        assert store.set("abc", {"a": 1}) is True
        client.set.assert_called_once_with("icebox:abc", pickle.dumps({"a": 1}), px=60_000)

    def test_set_with_ttl(self, store, client) -> None:
        store.set("abc", 1, ttl=120)
        assert client.set.call_args.kwargs["px"] == 120_000

    def test_fractional_ttl_keeps_milliseconds(self, store, client) -> None:
        store.set("abc", 1, ttl=0.2)
        assert client.set.call_args.kwargs["px"] == 200

    def test_zero_ttl_expires_after_one_millisecond(self, store, client) -> None:
        store.set("abc", 1, ttl=0)
        assert client.set.call_args.kwargs["px"] == 1
        assert "ex" not in client.set.call_args.kwargs

    def test_custom_prefix(self, client) -> None:
        store = RedisStore(StoreConfig(timeout=60, prefix="app:"), client=client)
        store.set("abc", 1)
        assert client.set.call_args.args[0] == "app:abc"

    def test_get_unpickles(self, store, client) -> None:
        client.get.return_value = pickle.dumps([1, 2, 3])
        assert store.get("abc") == [1, 2, 3]
        client.get.assert_called_once_with("icebox:abc")

    def test_get_missing_raises_not_found(self, store, client) -> None:
        client.get.return_value = None
        with pytest.raises(NotFoundError):
            store.get("abc")

    def test_get_corrupt_raises_storage_error(self, store, client) -> None:
        client.get.return_value = b"garbage"
        with pytest.raises(StorageIOError):
            store.get("abc")

    def test_exists_and_stale(self, store, client) -> None:
        client.exists.return_value = 1
        assert store.exists("abc") is True
        assert store.stale("abc") is False
        client.exists.return_value = 0
        assert store.exists("abc") is False
        assert store.stale("abc") is True

    def test_close(self, store, client) -> None:
        store.close()
        client.close.assert_called_once()


# ---------------------------------------------------------------------------
# Network failures
# ---------------------------------------------------------------------------


class TestNetworkFailures:
    def test_read_failure_is_a_miss(self, store, client) -> None:
        client.get.side_effect = redis.ConnectionError("refused")
        with pytest.raises(NotFoundError):
            store.get("abc")

    def test_lookup_failure_is_absence(self, store, client) -> None:
        client.exists.side_effect = redis.TimeoutError("timed out")
        assert store.exists("abc") is False
        assert store.stale("abc") is True

    def test_lookup_failure_logged_at_debug(self, client, sink) -> None:
        store = RedisStore(StoreConfig(timeout=60), logger=sink, client=client)
        client.exists.side_effect = redis.ConnectionError("refused")
        store.exists("abc")
        assert any("refused" in m for m in sink.messages("debug"))

    def test_write_failure_raises_storage_error(self, store, client) -> None:
        client.set.side_effect = redis.ConnectionError("refused")
        with pytest.raises(StorageIOError):
            store.set("abc", 1)
