"""Filesystem store: one pickled file per storage key.

The creation time of an entry is the modification time of its file, so
:meth:`FileStore.stale` follows the filesystem clock. Only the store-wide
timeout applies; a per-entry ``ttl`` passed to :meth:`FileStore.set` is
not persisted.
"""

from __future__ import annotations

import pickle
import time
from pathlib import Path
from typing import Any, Optional

from icebox.config import atomic_write, get_cache_dir
from icebox.exceptions import NotFoundError, StorageIOError
from icebox.models import StoreConfig
from icebox.output import LogSink
from icebox.stores.base import Clock, Store


class FileStore(Store):
    """Store entries as files in a directory.

    The directory is ``config.location`` or ``<cache dir>/store`` and is
    created on construction if it does not exist. Writes go through
    :func:`~icebox.config.atomic_write`, so a concurrent reader sees either
    the previous value or the new one. A file that disappears between
    :meth:`exists` and :meth:`get` is reported as a miss.
    """

    def __init__(
        self,
        config: StoreConfig,
        logger: Optional[LogSink] = None,
        clock: Clock = time.time,
    ) -> None:
        if config.location is None:
            config = config.model_copy(update={"location": str(get_cache_dir() / "store")})
        super().__init__(config, logger=logger, clock=clock)
        self.path = Path(self.location).expanduser()
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Cannot create cache directory {self.path}: {exc}") from exc

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        self._log_write(key)
        try:
            atomic_write(self._entry_path(key), pickle.dumps(value))
        except (OSError, pickle.PicklingError, TypeError, AttributeError) as exc:
            raise StorageIOError(f"Cannot write cache entry {key}: {exc}") from exc
        return True

    def get(self, key: str) -> Any:
        try:
            raw = self._entry_path(key).read_bytes()
        except FileNotFoundError:
            self._log_read(key, False)
            raise NotFoundError(f"No cached entry for {key}") from None
        except OSError as exc:
            raise StorageIOError(f"Cannot read cache entry {key}: {exc}") from exc
        try:
            data = pickle.loads(raw)
        except Exception as exc:
            raise StorageIOError(f"Corrupt cache entry {key}: {exc}") from exc
        self._log_read(key, True)
        return data

    def exists(self, key: str) -> bool:
        return self._entry_path(key).is_file()

    def stale(self, key: str) -> bool:
        try:
            created_at = self._entry_path(key).stat().st_mtime
        except FileNotFoundError:
            return True
        except OSError as exc:
            raise StorageIOError(f"Cannot stat cache entry {key}: {exc}") from exc
        return self.clock() - created_at > self.timeout

    def _entry_path(self, key: str) -> Path:
        return self.path / key
