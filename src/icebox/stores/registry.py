"""Named registry of store backends.

A static mapping from a backend name (``"memory"``, ``"file"``, ...) to a
:class:`~icebox.stores.base.Store` subclass. Names are resolved when a
cache is configured, so a typo fails immediately instead of on first use.

Third-party packages can add backends at runtime with
:func:`register_store`, or declare an entry point in the ``icebox.stores``
group and call :func:`discover_stores`::

    [project.entry-points."icebox.stores"]
    dynamo = "my_package.store:DynamoStore"
"""

from __future__ import annotations

import importlib.metadata
import inspect
import logging
import time
from typing import Optional

from icebox.exceptions import ConfigurationError, StoreNotFoundError
from icebox.models import StoreConfig
from icebox.output import LogSink
from icebox.stores.base import Clock, Store
from icebox.stores.disk import DiskStore
from icebox.stores.filesystem import FileStore
from icebox.stores.memory import MemoryStore
from icebox.stores.redis_store import RedisStore

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "icebox.stores"
"""The entry-point group name used for store discovery."""

_BUILTIN_STORES: dict[str, type[Store]] = {
    "memory": MemoryStore,
    "file": FileStore,
    "disk": DiskStore,
    "redis": RedisStore,
}

_stores: dict[str, type[Store]] = dict(_BUILTIN_STORES)


def register_store(name: str, store_cls: type[Store], replace: bool = False) -> None:
    """Register *store_cls* under *name*.

    Args:
        name: Backend name used in :attr:`~icebox.models.StoreConfig.store`.
            Matched case-insensitively.
        store_cls: A concrete :class:`~icebox.stores.base.Store` subclass.
        replace: Allow overriding an existing registration.

    Raises:
        ConfigurationError: If *store_cls* is not a concrete ``Store``
            subclass, or *name* is taken and *replace* is false.
    """
    if not (inspect.isclass(store_cls) and issubclass(store_cls, Store)):
        raise ConfigurationError(f"Cache store '{name}' must subclass Store")
    if inspect.isabstract(store_cls):
        missing = ", ".join(sorted(store_cls.__abstractmethods__))
        raise ConfigurationError(
            f"Cache store '{name}' does not implement: {missing}"
        )
    key = name.lower()
    if key in _stores and not replace and _stores[key] is not store_cls:
        raise ConfigurationError(f"Cache store '{name}' is already registered")
    _stores[key] = store_cls


def unregister_store(name: str) -> None:
    """Remove a registration. Built-in backends are restored, not removed."""
    key = name.lower()
    if key in _BUILTIN_STORES:
        _stores[key] = _BUILTIN_STORES[key]
    else:
        _stores.pop(key, None)


def lookup_store(name: str) -> type[Store]:
    """Return the store class registered under *name*.

    An unknown name triggers :func:`discover_stores` once before giving up,
    so backends published by installed packages resolve without an explicit
    discovery call.

    Raises:
        StoreNotFoundError: If no backend is registered under *name*.
    """
    key = name.lower()
    if key not in _stores:
        discover_stores()
    try:
        return _stores[key]
    except KeyError:
        raise StoreNotFoundError(
            f"The cache store '{name}' was not found. "
            f"Available stores: {', '.join(available_stores())}"
        ) from None


def available_stores() -> list[str]:
    """Return the registered backend names, sorted alphabetically."""
    return sorted(_stores)


def create_store(
    config: StoreConfig,
    logger: Optional[LogSink] = None,
    clock: Clock = time.time,
) -> Store:
    """Instantiate the backend named by ``config.store``.

    Raises:
        StoreNotFoundError: If the backend name is unknown.
        ConfigurationError: If the backend rejects the configuration.
    """
    store_cls = lookup_store(config.store)
    return store_cls(config, logger=logger, clock=clock)


def discover_stores() -> list[str]:
    """Register backends published under the ``icebox.stores`` entry-point group.

    Returns:
        Names registered by this call. Entry points that fail to load or
        are not valid stores are logged as warnings and skipped.
    """
    registered: list[str] = []
    for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
        try:
            store_cls = ep.load()
            register_store(ep.name, store_cls)
        except Exception as exc:
            logger.warning("Failed to load cache store '%s': %s", ep.name, exc)
            continue
        logger.debug("Registered cache store '%s'", ep.name)
        registered.append(ep.name)
    return registered
