"""Networked key-value store on redis.

Expiry is enforced by the server: every entry is written with ``SET ... PX``
so :meth:`RedisStore.stale` reduces to "is it still there". Read-side
network failures are indistinguishable from expiry and are reported as a
miss; a failed write raises :class:`~icebox.exceptions.StorageIOError`.
"""

from __future__ import annotations

import pickle
import time
from typing import Any, Optional

import redis

from icebox.exceptions import NotFoundError, StorageIOError
from icebox.models import StoreConfig
from icebox.output import LogSink
from icebox.stores.base import Clock, Store

DEFAULT_URL = "redis://localhost:6379/0"
DEFAULT_PREFIX = "icebox:"
DEFAULT_SOCKET_TIMEOUT = 1.0


class RedisStore(Store):
    """Store entries in redis.

    ``config.location`` is a redis URL (default ``redis://localhost:6379/0``).

    Options (``StoreConfig`` extras):
        prefix: Namespace prepended to every storage key (default ``icebox:``).
        socket_timeout: Seconds allowed for each round trip (default 1.0).

    Args:
        client: A ready :class:`redis.Redis` instance, used instead of
            connecting to ``location``.
    """

    def __init__(
        self,
        config: StoreConfig,
        logger: Optional[LogSink] = None,
        clock: Clock = time.time,
        client: Optional[redis.Redis] = None,
    ) -> None:
        if config.location is None:
            config = config.model_copy(update={"location": DEFAULT_URL})
        super().__init__(config, logger=logger, clock=clock)
        self.prefix: str = config.option("prefix", DEFAULT_PREFIX)
        if client is None:
            socket_timeout = float(config.option("socket_timeout", DEFAULT_SOCKET_TIMEOUT))
            client = redis.Redis.from_url(
                self.location,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )
        self._client = client

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        self._log_write(key)
        timeout = self.timeout if ttl is None else ttl
        try:
            payload = pickle.dumps(value)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            raise StorageIOError(f"Cannot serialise cache entry {key}: {exc}") from exc
        try:
            # PX must be a positive integer number of milliseconds.
            self._client.set(self._name(key), payload, px=max(1, int(timeout * 1000)))
        except redis.RedisError as exc:
            raise StorageIOError(f"Cannot write cache entry {key}: {exc}") from exc
        return True

    def get(self, key: str) -> Any:
        try:
            raw = self._client.get(self._name(key))
        except redis.RedisError as exc:
            self.logger.debug(f"Cache: redis read failed for {key}: {exc}")
            raw = None
        self._log_read(key, raw is not None)
        if raw is None:
            raise NotFoundError(f"No cached entry for {key}")
        try:
            return pickle.loads(raw)
        except Exception as exc:
            raise StorageIOError(f"Corrupt cache entry {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            return bool(self._client.exists(self._name(key)))
        except redis.RedisError as exc:
            self.logger.debug(f"Cache: redis lookup failed for {key}: {exc}")
            return False

    def stale(self, key: str) -> bool:
        return not self.exists(key)

    def close(self) -> None:
        """Close the redis connection pool."""
        self._client.close()

    def _name(self, key: str) -> str:
        return f"{self.prefix}{key}"
