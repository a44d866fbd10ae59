"""Abstract base class for cache stores.

Every backend subclasses :class:`Store` and implements the four-operation
capability contract -- :meth:`~Store.set`, :meth:`~Store.get`,
:meth:`~Store.exists` and :meth:`~Store.stale`. Stores only ever see
storage keys produced by :class:`~icebox.keys.KeyCodec`; the logical key
stays inside :class:`~icebox.cache.Cache`.

Stores are registered by name in :mod:`icebox.stores.registry` and created
from a :class:`~icebox.models.StoreConfig`.

Example:
    Minimal store implementation::

        class DictStore(Store):
            def __init__(self, config, logger=None, clock=time.time):
                super().__init__(config, logger=logger, clock=clock)
                self._data = {}

            def set(self, key, value, ttl=None):
                self._data[key] = (self.clock(), value)
                return True

            def get(self, key):
                try:
                    return self._data[key][1]
                except KeyError:
                    raise NotFoundError(key) from None

            def exists(self, key):
                return key in self._data

            def stale(self, key):
                if not self.exists(key):
                    return True
                return self.clock() - self._data[key][0] > self.timeout
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from icebox.exceptions import ConfigurationError, UnsupportedOperationError
from icebox.models import StoreConfig
from icebox.output import LogSink, NullSink

Clock = Callable[[], float]


class Store(ABC):
    """Base class for all cache stores.

    The constructor validates the configuration bundle and keeps the
    default ``timeout``, the optional ``location`` and the injected logger
    and clock. Subclasses must call ``super().__init__`` first.

    Args:
        config: Store configuration. ``timeout`` is required.
        logger: Diagnostic sink. ``None`` keeps the store silent.
        clock: Returns the current time in seconds since the epoch.

    Raises:
        ConfigurationError: If ``config.timeout`` is missing.
    """

    def __init__(
        self,
        config: StoreConfig,
        logger: Optional[LogSink] = None,
        clock: Clock = time.time,
    ) -> None:
        if config.timeout is None:
            raise ConfigurationError("You need to set the timeout option for the cache store")
        self.config = config
        self.timeout: float = config.timeout
        self.location: Optional[str] = config.location
        self.clock = clock
        self.logger: LogSink = logger if logger is not None else NullSink()

        if logger is not None:
            message = f"Cache: Using {type(self).__name__}"
            if self.location:
                message += f" in location: {self.location}"
            message += f" with timeout {_format_seconds(self.timeout)} sec"
            self.logger.info(message)

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """Persist *value* under *key* and stamp its creation time.

        Overwrites any previous value. Backends with per-entry timeouts use
        *ttl* when given and :attr:`timeout` otherwise.

        Returns:
            ``True`` once the value is stored.

        Raises:
            StorageIOError: If the backend cannot write the entry.
        """
        raise UnsupportedOperationError(_unsupported(self, "set"))

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the value stored under *key*, stale or not.

        Raises:
            NotFoundError: If nothing is stored under *key*.
            StorageIOError: If the entry exists but cannot be read.
        """
        raise UnsupportedOperationError(_unsupported(self, "get"))

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return ``True`` if a value is persisted under *key*, stale or not."""
        raise UnsupportedOperationError(_unsupported(self, "exists"))

    @abstractmethod
    def stale(self, key: str) -> bool:
        """Return ``True`` if *key* is absent or older than its timeout."""
        raise UnsupportedOperationError(_unsupported(self, "stale"))

    def close(self) -> None:
        """Release backend resources. The default implementation does nothing."""

    def _log_read(self, key: str, hit: bool) -> None:
        self.logger.info(f"Cache: {'hit' if hit else 'miss'} ({key})")

    def _log_write(self, key: str) -> None:
        self.logger.info(f"Cache: set ({key})")


def _unsupported(store: Store, operation: str) -> str:
    return f"Please implement method {operation} in your store class {type(store).__name__}"


def _format_seconds(seconds: float) -> str:
    return str(int(seconds)) if float(seconds).is_integer() else str(seconds)
