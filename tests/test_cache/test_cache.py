"""Tests for the Cache facade."""

from __future__ import annotations

import io
import logging

import pytest

from icebox.cache import Cache
from icebox.exceptions import ConfigurationError, StoreNotFoundError
from icebox.keys import encode_key
from icebox.models import StoreConfig
from icebox.output import NullSink, OutputManager
from icebox.stores import DiskStore, FileStore, MemoryStore


@pytest.fixture()
def cache(clock):
    c = Cache("memory", timeout=60, clock=clock, logger=None)
    yield c
    c.close()


# ------------------------------------------------------------------ #
# Construction
# ------------------------------------------------------------------ #


class TestConstruction:
    def test_defaults_to_memory(self) -> None:
        cache = Cache(timeout=60, logger=None)
        assert isinstance(cache.store, MemoryStore)
        assert cache.timeout == 60

    def test_timeout_is_required(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout"):
            Cache("memory", logger=None)

    def test_unknown_store(self) -> None:
        with pytest.raises(StoreNotFoundError):
            Cache("memcache", timeout=60, logger=None)

    def test_invalid_options(self) -> None:
        with pytest.raises(ConfigurationError):
            Cache("memory", timeout=-1, logger=None)

    def test_file_store_options(self, tmp_path) -> None:
        cache = Cache("file", timeout=600, location=str(tmp_path), logger=None)
        assert isinstance(cache.store, FileStore)
        assert cache.store.path == tmp_path

    def test_accepts_store_instance(self) -> None:
        store = MemoryStore(StoreConfig(timeout=5))
        cache = Cache(store, logger=None)
        assert cache.store is store

    def test_from_config_carries_extras(self, tmp_path) -> None:
        config = StoreConfig(store="disk", timeout=30, location=str(tmp_path), size_limit=2**20)
        with Cache.from_config(config, logger=None) as cache:
            assert isinstance(cache.store, DiskStore)
            assert cache.store.config.option("size_limit") == 2**20

    def test_default_logger_is_stderr(self, capsys) -> None:
        Cache("memory", timeout=60)
        assert "Cache: Using MemoryStore with timeout 60 sec" in capsys.readouterr().err

    def test_none_logger_is_silent(self, capsys) -> None:
        cache = Cache("memory", timeout=60, logger=None)
        cache.set("/a", 1)
        cache.get("/a")
        assert capsys.readouterr().err == ""
        assert isinstance(cache.logger, NullSink)

    def test_logger_to_file(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "cache.log"
        cache = Cache("memory", timeout=60, logger=str(log_file))
        cache.set("/a", 1)
        text = log_file.read_text()
        assert "Cache: Using MemoryStore" in text
        assert f"Cache: set ({encode_key('/a')})" in text

    def test_close_releases_log_file(self, tmp_path) -> None:
        cache = Cache("memory", timeout=60, logger=tmp_path / "cache.log")
        stream = cache.logger._stream
        cache.close()
        assert stream.closed

    def test_close_leaves_caller_stream_open(self) -> None:
        stream = io.StringIO()
        with Cache("memory", timeout=60, logger=stream):
            pass
        assert not stream.closed

    def test_logger_to_stream(self) -> None:
        stream = io.StringIO()
        cache = Cache("memory", timeout=60, logger=stream)
        cache.set("/a", 1)
        assert "Cache: set" in stream.getvalue()
        assert isinstance(cache.logger, OutputManager)

    def test_stdlib_logger(self, caplog) -> None:
        log = logging.getLogger("icebox.test")
        with caplog.at_level(logging.INFO, logger="icebox.test"):
            Cache("memory", timeout=60, logger=log)
        assert "Cache: Using MemoryStore" in caplog.text


# ------------------------------------------------------------------ #
# get / set
# ------------------------------------------------------------------ #


class TestGetSet:
    def test_set_then_get(self, cache) -> None:
        assert cache.set("/users", {"id": 1}) is True
        assert cache.get("/users") == {"id": 1}

    def test_miss_returns_default(self, cache) -> None:
        assert cache.get("/missing") is None
        assert cache.get("/missing", default="fallback") == "fallback"
        assert cache.get("/missing", force=True, default=0) == 0

    def test_unknown_key(self, cache) -> None:
        assert cache.exists("/missing") is False
        assert cache.stale("/missing") is True

    def test_stale_value_hidden_without_force(self, cache, clock) -> None:
        cache.set("/users", "v")
        clock.advance(61)
        assert cache.get("/users") is None
        assert cache.get("/users", force=True) == "v"
        assert cache.exists("/users") is True

    def test_fresh_until_timeout(self, cache, clock) -> None:
        cache.set("/users", "v")
        clock.advance(60)
        assert cache.get("/users") == "v"

    def test_per_entry_timeout(self, cache, clock) -> None:
        cache.set("/short", "v", timeout=10)
        clock.advance(11)
        assert cache.stale("/short") is True

    def test_second_write_wins(self, cache, clock) -> None:
        cache.set("/k", "first")
        clock.advance(30)
        cache.set("/k", "second")
        clock.advance(45)
        assert cache.get("/k") == "second"
        assert len(cache.store) == 1

    def test_keys_are_case_insensitive(self, cache) -> None:
        cache.set("/Foo", "bar")
        assert cache.get("/foo") == "bar"
        assert cache.encode("/Foo") == cache.encode("/foo")

    def test_store_sees_only_encoded_keys(self, cache) -> None:
        cache.set("/users?page=1", 1)
        assert cache.store.exists(encode_key("/users?page=1"))
        assert not cache.store.exists("/users?page=1")

    def test_file_backed_round_trip(self, tmp_path) -> None:
        with Cache("file", timeout=60, location=str(tmp_path), logger=None) as cache:
            cache.set("/users", [1, 2])
            assert cache.get("/users") == [1, 2]
            assert (tmp_path / encode_key("/users")).is_file()
