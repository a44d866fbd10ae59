"""HTTP client module for icebox.

Provides :class:`CachingClient`, a blocking client backed by
:class:`httpx.Client` that answers GET requests from a
:class:`~icebox.cache.Cache` and falls back to stale entries when the
upstream is unreachable.

Example::

    from icebox.client import CachingClient

    with CachingClient("https://api.example.com") as client:
        resp = client.get("/users")
"""

from icebox.client.sync_client import CachingClient

__all__ = ["CachingClient"]
