"""Pluggable cache store backends.

Every backend implements the :class:`~icebox.stores.base.Store` contract
and is looked up by name through :mod:`icebox.stores.registry`.

Built-in backends:
    ``memory`` -- :class:`~icebox.stores.memory.MemoryStore`
    ``file``   -- :class:`~icebox.stores.filesystem.FileStore`
    ``disk``   -- :class:`~icebox.stores.disk.DiskStore`
    ``redis``  -- :class:`~icebox.stores.redis_store.RedisStore`
"""

from icebox.stores.base import Store
from icebox.stores.disk import DiskStore
from icebox.stores.filesystem import FileStore
from icebox.stores.memory import MemoryStore
from icebox.stores.redis_store import RedisStore
from icebox.stores.registry import (
    available_stores,
    create_store,
    discover_stores,
    lookup_store,
    register_store,
    unregister_store,
)

__all__ = [
    "Store",
    "MemoryStore",
    "FileStore",
    "DiskStore",
    "RedisStore",
    "available_stores",
    "create_store",
    "discover_stores",
    "lookup_store",
    "register_store",
    "unregister_store",
]
