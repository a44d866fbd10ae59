"""Process-local store backed by a dict.

Entries live as ``(created_at, timeout, value)`` tuples, so every entry
carries its own timeout. Everything is lost when the process exits.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Optional

from icebox.exceptions import NotFoundError
from icebox.models import StoreConfig
from icebox.output import LogSink
from icebox.stores.base import Clock, Store

_LOCK_STRIPES = 64


class MemoryStore(Store):
    """In-memory store with per-entry timeouts.

    Operations on the same key are serialised by one of a fixed pool of
    locks picked by key hash, so the lock count never grows with the number
    of keys seen.
    """

    def __init__(
        self,
        config: StoreConfig,
        logger: Optional[LogSink] = None,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(config, logger=logger, clock=clock)
        self._store: dict[str, tuple[float, float, Any]] = {}
        self._locks = [threading.RLock() for _ in range(_LOCK_STRIPES)]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        self._log_write(key)
        timeout = self.timeout if ttl is None else ttl
        with self._lock_for(key):
            self._store[key] = (self.clock(), timeout, value)
        return True

    def get(self, key: str) -> Any:
        with self._lock_for(key):
            entry = self._store.get(key)
        self._log_read(key, entry is not None)
        if entry is None:
            raise NotFoundError(f"No cached entry for {key}")
        return entry[2]

    def exists(self, key: str) -> bool:
        with self._lock_for(key):
            return key in self._store

    def stale(self, key: str) -> bool:
        with self._lock_for(key):
            entry = self._store.get(key)
            if entry is None:
                return True
            created_at, timeout, _ = entry
            return self.clock() - created_at > timeout

    def __len__(self) -> int:
        return len(self._store)

    def _lock_for(self, key: str) -> threading.RLock:
        return self._locks[hash(key) % len(self._locks)]
