"""Caching HTTP GET client.

This module provides :class:`CachingClient`, which wraps
:class:`httpx.Client` and routes every GET through a
:class:`~icebox.fetch.FetchOrchestrator`:

- **Cache hits** are answered from the store without network traffic.
- **Misses** go to the network; 200 responses are cached with the
  ``Cache-Control: max-age`` of the response or the store's default
  timeout.
- **Transport failures** (connection refused, DNS, timeouts) are retried
  with exponential backoff up to ``max_retries`` and then surface as
  :class:`~icebox.exceptions.FetchError` -- unless a copy of the response
  was cached earlier, in which case that copy is returned, stale or not.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from icebox.cache import Cache
from icebox.exceptions import FetchError
from icebox.fetch import FetchErr, FetchOk, FetchOrchestrator, FetchResult
from icebox.keys import QueryLike, build_logical_key
from icebox.models import DEFAULT_TIMEOUT, RequestConfig
from icebox.output import STDERR, OutputManager, make_sink
from icebox.client.response import capture_response, restore_response


class CachingClient:
    """Synchronous HTTP client with a transparent GET cache.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        base_url: Prefix for relative request paths.
        cache: The cache to use. Defaults to an in-memory cache with a
            60 second timeout.
        request: Transport settings (timeout, SSL verification, retries).
        logger: Diagnostic destination; see :func:`~icebox.output.make_sink`.
            The default cache shares this sink. A log file opened from a
            path is closed when the context exits.
        transport: Optional :class:`httpx.BaseTransport`, mainly for tests.

    Example::

        with CachingClient("https://api.example.com", cache=Cache("file", timeout=600)) as client:
            response = client.get("/users", params={"page": 2})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        cache: Optional[Cache] = None,
        request: Optional[RequestConfig] = None,
        logger: Any = STDERR,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._config = request or RequestConfig()
        self._logger = make_sink(logger)
        self._owns_logger = self._logger is not logger
        self._transport = transport
        if cache is None:
            cache = Cache(logger=self._logger, timeout=DEFAULT_TIMEOUT)
        self.cache = cache
        self._orchestrator = FetchOrchestrator(self.cache, logger=self._logger)
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> CachingClient:
        self._client = httpx.Client(
            base_url=self._base_url or "",
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None
        if self._owns_logger and isinstance(self._logger, OutputManager):
            self._logger.close()

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def get(
        self,
        path: str,
        params: Optional[QueryLike] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a GET request through the cache.

        Args:
            path: URL path (appended to ``base_url``) or absolute URL. The
                path and query form the cache key; case is ignored.
            params: Query parameters.
            headers: Extra request headers. They are not part of the key.

        Returns:
            The fresh, cached, or stale :class:`httpx.Response`. Non-200
            responses are returned but never cached.

        Raises:
            FetchError: If the upstream is unreachable and nothing was
                cached for this request.
        """
        self._require_client()
        key = build_logical_key(path, params)
        payload = self._orchestrator.resolve(
            key,
            lambda _key: self._fetch(path, params, headers),
            label=key,
        )
        return restore_response(payload)

    def get_without_caching(
        self,
        path: str,
        params: Optional[QueryLike] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a GET request straight to the network.

        Raises:
            FetchError: On transport failure after all retries.
        """
        self._require_client()
        return self._execute_with_retry(path, params, headers)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_client(self) -> None:
        if self._client is None:
            raise RuntimeError("Client not initialised -- use as context manager")

    def _fetch(
        self,
        path: str,
        params: Optional[QueryLike],
        headers: Optional[dict[str, str]],
    ) -> FetchResult:
        try:
            response = self._execute_with_retry(path, params, headers)
        except FetchError as exc:
            return FetchErr(exc)
        return FetchOk(
            payload=capture_response(response),
            status_code=response.status_code,
            headers=response.headers,
        )

    def _execute_with_retry(
        self,
        path: str,
        params: Optional[QueryLike],
        headers: Optional[dict[str, str]],
    ) -> httpx.Response:
        """Execute the GET with exponential-backoff retry on transport errors.

        The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        assert self._client is not None

        max_retries = self._config.max_retries
        merged_headers = {"Accept": "application/json", **(headers or {})}

        for attempt in range(max_retries + 1):
            try:
                return self._client.get(path, params=params, headers=merged_headers)
            except httpx.TransportError as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt  # 1, 2, 4, ...
                    self._logger.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise FetchError(
                    f"GET {path} failed after {max_retries + 1} attempts: {exc}"
                ) from exc

        raise FetchError(f"GET {path} failed")  # pragma: no cover
