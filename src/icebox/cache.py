"""The cache facade.

:class:`Cache` owns exactly one :class:`~icebox.stores.base.Store` for its
lifetime and hides key encoding from callers: every method takes a
logical key, encodes it with a :class:`~icebox.keys.KeyCodec` and
delegates to the store. A miss is never an exception at this level;
:meth:`Cache.get` returns its ``default`` instead.

Example::

    from icebox import Cache

    cache = Cache("file", timeout=600, location="/tmp/icebox")
    cache.set("/users?page=1", payload)
    cache.get("/Users?page=1")          # same entry, keys are case-normalised
"""

from __future__ import annotations

import time
from typing import Any, Optional, Union

from pydantic import ValidationError

from icebox.exceptions import ConfigurationError, NotFoundError
from icebox.keys import KeyCodec, default_codec
from icebox.models import DEFAULT_STORE, StoreConfig
from icebox.output import STDERR, OutputManager, make_sink
from icebox.stores.base import Clock, Store
from icebox.stores.registry import create_store


class Cache:
    """Key-encoding facade over a single store.

    Args:
        store: A backend name (``"memory"``, ``"file"``, ``"disk"``,
            ``"redis"`` or a registered custom name) or a ready
            :class:`~icebox.stores.base.Store` instance.
        logger: Diagnostic destination; see :func:`~icebox.output.make_sink`.
            Defaults to standard error. ``None`` silences the cache. A sink
            the cache built itself, such as a log file opened from a path,
            is closed together with the cache.
        clock: Time source handed to the store. Defaults to :func:`time.time`.
        codec: Key codec. Defaults to the MD5 :class:`~icebox.keys.KeyCodec`.
        **options: Store configuration (``timeout``, ``location`` and
            backend-specific extras), validated as a
            :class:`~icebox.models.StoreConfig`.

    Raises:
        StoreNotFoundError: If *store* names an unregistered backend.
        ConfigurationError: If the options are invalid or ``timeout`` is
            missing.
    """

    def __init__(
        self,
        store: Union[str, Store] = DEFAULT_STORE,
        *,
        logger: Any = STDERR,
        clock: Optional[Clock] = None,
        codec: Optional[KeyCodec] = None,
        **options: Any,
    ) -> None:
        self.logger = make_sink(logger)
        self._owns_logger = self.logger is not logger
        self.codec = codec or default_codec
        if isinstance(store, Store):
            self.store = store
            return
        try:
            config = StoreConfig(store=store, **options)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid cache store options: {exc}") from exc
        self.store = create_store(
            config,
            logger=None if logger is None else self.logger,
            clock=clock or time.time,
        )

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        *,
        logger: Any = STDERR,
        clock: Optional[Clock] = None,
        codec: Optional[KeyCodec] = None,
    ) -> Cache:
        """Build a cache from a validated :class:`~icebox.models.StoreConfig`."""
        options = config.model_dump(exclude={"store"})
        return cls(config.store, logger=logger, clock=clock, codec=codec, **options)

    @property
    def timeout(self) -> float:
        """The store's default entry timeout in seconds."""
        return self.store.timeout

    def encode(self, key: str) -> str:
        """Return the storage key for logical *key*."""
        return self.codec.encode(key)

    def get(self, key: str, force: bool = False, default: Any = None) -> Any:
        """Return the value cached under *key*.

        Args:
            key: Logical key.
            force: Return the value even when it is stale.
            default: Returned on a miss, or for a stale entry when *force*
                is false.
        """
        if not force and self.stale(key):
            return default
        try:
            return self.store.get(self.encode(key))
        except NotFoundError:
            return default

    def set(self, key: str, value: Any, timeout: Optional[float] = None) -> bool:
        """Store *value* under *key*, optionally with its own *timeout*."""
        return self.store.set(self.encode(key), value, timeout)

    def exists(self, key: str) -> bool:
        """Return ``True`` if anything, stale or fresh, is stored under *key*."""
        return self.store.exists(self.encode(key))

    def stale(self, key: str) -> bool:
        """Return ``True`` if *key* is absent or has outlived its timeout."""
        return self.store.stale(self.encode(key))

    def close(self) -> None:
        """Release the store's resources and any log file the cache opened."""
        try:
            self.store.close()
        finally:
            if self._owns_logger and isinstance(self.logger, OutputManager):
                self.logger.close()

    def __enter__(self) -> Cache:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
