"""Logical and storage keys.

A *logical key* is the caller-facing identity of a cached request: the
request path followed by its serialised query. A *storage key* is what a
:class:`~icebox.stores.base.Store` sees: the lower-cased logical key run
through MD5 and rendered as 32 hex characters, which is safe as a file
name and as a redis key and bounds key length.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Union

import httpx

QueryLike = Union[str, Mapping[str, Any], Iterable[tuple[str, Any]]]


class KeyCodec:
    """Deterministic transform from a logical key into a storage key.

    MD5 is used for its spread, not for collision resistance against an
    adversary.

    Example::

        >>> KeyCodec().encode("/Users?page=2") == KeyCodec().encode("/users?page=2")
        True
    """

    def encode(self, logical_key: str) -> str:
        return hashlib.md5(logical_key.lower().encode("utf-8")).hexdigest()


default_codec = KeyCodec()


def encode_key(logical_key: str) -> str:
    """Encode *logical_key* with the default :class:`KeyCodec`."""
    return default_codec.encode(logical_key)


def build_logical_key(path: str, params: Optional[QueryLike] = None) -> str:
    """Build the logical key for a GET of *path* with query *params*.

    Mapping and pair-sequence params are sorted by name so that the same
    query in a different order maps to the same entry. A string is taken
    as an already serialised query.

    Args:
        path: Request path (or absolute URL).
        params: Query parameters.

    Returns:
        ``path`` or ``path?query``.
    """
    if not params:
        return path
    if isinstance(params, str):
        query = params.lstrip("?")
    else:
        items = params.items() if isinstance(params, Mapping) else params
        pairs: list[tuple[str, Any]] = []
        for name, value in items:
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                pairs.extend((str(name), item) for item in value)
            else:
                pairs.append((str(name), value))
        pairs.sort(key=lambda pair: pair[0])
        query = str(httpx.QueryParams(pairs))
    return f"{path}?{query}" if query else path
