"""Persistent store on top of :mod:`diskcache`.

Unlike :class:`~icebox.stores.filesystem.FileStore`, every entry keeps its
own timeout, so TTLs taken from ``Cache-Control: max-age`` survive a
restart. Entries are written without a diskcache ``expire`` so a stale
entry stays available for fallback until it is overwritten or culled by
diskcache's size limit.
"""

from __future__ import annotations

import pickle
import sqlite3
import time
from typing import Any, Optional

import diskcache

from icebox.config import get_cache_dir
from icebox.exceptions import NotFoundError, StorageIOError
from icebox.models import StoreConfig
from icebox.output import LogSink
from icebox.stores.base import Clock, Store

_MISSING = object()

_BACKEND_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout, pickle.PickleError)


class DiskStore(Store):
    """diskcache-backed store with per-entry timeouts.

    Options (``StoreConfig`` extras):
        size_limit: Maximum size of the cache directory in bytes
            (diskcache default: 1 GiB).
    """

    def __init__(
        self,
        config: StoreConfig,
        logger: Optional[LogSink] = None,
        clock: Clock = time.time,
    ) -> None:
        if config.location is None:
            config = config.model_copy(update={"location": str(get_cache_dir() / "disk")})
        super().__init__(config, logger=logger, clock=clock)
        settings: dict[str, Any] = {}
        size_limit = config.option("size_limit")
        if size_limit is not None:
            settings["size_limit"] = int(size_limit)
        try:
            self._cache = diskcache.Cache(str(self.location), **settings)
        except _BACKEND_ERRORS as exc:
            raise StorageIOError(f"Cannot open cache directory {self.location}: {exc}") from exc

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        self._log_write(key)
        timeout = self.timeout if ttl is None else ttl
        try:
            self._cache.set(key, (self.clock(), timeout, value))
        except (*_BACKEND_ERRORS, TypeError, AttributeError) as exc:
            raise StorageIOError(f"Cannot write cache entry {key}: {exc}") from exc
        return True

    def get(self, key: str) -> Any:
        entry = self._entry(key)
        self._log_read(key, entry is not None)
        if entry is None:
            raise NotFoundError(f"No cached entry for {key}")
        return entry[2]

    def exists(self, key: str) -> bool:
        try:
            return key in self._cache
        except _BACKEND_ERRORS as exc:
            raise StorageIOError(f"Cannot check cache entry {key}: {exc}") from exc

    def stale(self, key: str) -> bool:
        entry = self._entry(key)
        if entry is None:
            return True
        created_at, timeout, _ = entry
        return self.clock() - created_at > timeout

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)

    def _entry(self, key: str) -> Optional[tuple[float, float, Any]]:
        try:
            entry = self._cache.get(key, default=_MISSING)
        except _BACKEND_ERRORS as exc:
            raise StorageIOError(f"Cannot read cache entry {key}: {exc}") from exc
        if entry is _MISSING:
            return None
        return entry
