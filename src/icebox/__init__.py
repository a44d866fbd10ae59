"""icebox -- a transparent response cache for HTTP GET calls.

icebox decides, per request, whether to answer from a local store or fetch
fresh data. Entries age out after a timeout taken from the response's
``Cache-Control: max-age`` or the store default, and when the upstream
is unreachable the last cached copy is served even if it is stale.

Typical use::

    from icebox import Cache
    from icebox.client import CachingClient

    cache = Cache("file", timeout=600, location="/var/cache/myapp")
    with CachingClient("https://api.example.com", cache=cache) as client:
        client.get("/users", params={"page": 1})

Modules:
    cache: The :class:`Cache` facade over a store.
    fetch: The get-or-fetch policy with stale fallback.
    keys: Logical key construction and the storage key codec.
    stores: Store contract, registry and the built-in backends.
    client: httpx-based caching GET client.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: Diagnostic sinks and stdout/stderr formatting.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"

from icebox.cache import Cache  # noqa: E402
from icebox.fetch import FetchErr, FetchOk, FetchOrchestrator, parse_max_age  # noqa: E402
from icebox.keys import KeyCodec, build_logical_key  # noqa: E402

__all__ = [
    "Cache",
    "FetchErr",
    "FetchOk",
    "FetchOrchestrator",
    "KeyCodec",
    "build_logical_key",
    "parse_max_age",
    "__version__",
]
