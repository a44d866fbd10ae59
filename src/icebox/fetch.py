"""Get-or-fetch policy.

:class:`FetchOrchestrator` decides, per logical key, whether to answer from
a :class:`~icebox.cache.Cache` or call the fetch collaborator, and what to
do when that call fails:

1. A fresh entry (exists and not stale) is returned without a fetch.
2. Otherwise the collaborator is called. A successful result is returned;
   it is also cached when its status is 200, with a timeout taken from
   ``Cache-Control: max-age`` or the store default.
3. A failed fetch falls back to whatever is cached for the key, stale or
   not. Only when nothing is cached does the original failure propagate.

The collaborator returns a :data:`FetchResult` -- :class:`FetchOk` or
:class:`FetchErr` -- rather than raising, although an exception it does
raise is treated exactly like a returned :class:`FetchErr`.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from icebox.cache import Cache
from icebox.exceptions import StorageIOError
from icebox.output import STDERR, make_sink

_MAX_AGE_RE = re.compile(r"max-age=(\d+)", re.IGNORECASE)

_MISS = object()


@dataclass
class FetchOk:
    """A completed upstream call, whatever its status code."""

    payload: Any
    status_code: Union[int, str]
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def cacheable(self) -> bool:
        """Only plain 200 responses are written to the cache."""
        return str(self.status_code) == "200"


@dataclass
class FetchErr:
    """An upstream call that did not complete."""

    cause: BaseException


FetchResult = Union[FetchOk, FetchErr]
Fetcher = Callable[[str], FetchResult]


def parse_max_age(headers: Mapping[str, str]) -> Optional[int]:
    """Return the ``max-age`` of a ``Cache-Control`` header, in seconds.

    The header name is matched case-insensitively.

    Returns:
        The directive's value, or ``None`` when the header or the
        directive is missing.
    """
    value = headers.get("cache-control")
    if value is None:
        for name, candidate in headers.items():
            if name.lower() == "cache-control":
                value = candidate
                break
    if not value:
        return None
    match = _MAX_AGE_RE.search(value)
    return int(match.group(1)) if match else None


class FetchOrchestrator:
    """Resolve logical keys against a cache and a fetch collaborator.

    Holds no per-key state; everything that persists lives in the cache's
    store, so one orchestrator may serve concurrent callers.

    Args:
        cache: The cache to read from and write to.
        logger: Diagnostic destination; see :func:`~icebox.output.make_sink`.
    """

    def __init__(self, cache: Cache, logger: Any = STDERR) -> None:
        self.cache = cache
        self.logger = make_sink(logger)

    def resolve(self, key: str, fetch: Fetcher, label: Optional[str] = None) -> Any:
        """Return the payload for *key*, from the cache or from *fetch*.

        Args:
            key: Logical key.
            fetch: Collaborator called with *key* on a miss.
            label: Request description used in log lines. Defaults to *key*.

        Returns:
            The cached payload on a hit, the fetched payload on a completed
            fetch (cacheable or not), or the stale payload when the fetch
            failed and something was cached.

        Raises:
            BaseException: The fetch failure itself, unchanged, when it
                failed and nothing was cached for *key*.
        """
        label = label or key

        if self._is_fresh(key):
            cached = self._read(key)
            if cached is not _MISS:
                self.logger.debug(f"CACHE -- GET {label}")
                return cached

        self.logger.debug(f"/!\\ NETWORK -- GET {label}")
        result = self._invoke(fetch, key)

        if isinstance(result, FetchOk):
            if result.cacheable:
                self._store(key, result)
            return result.payload

        if self._has_fallback(key):
            try:
                stale = self.cache.get(key, force=True, default=_MISS)
            except StorageIOError as exc:
                self._warn(f"Stale cache entry for {label} is unreadable: {exc}")
                stale = _MISS
            if stale is not _MISS:
                self.logger.debug("!!! NETWORK FAILED -- RETURNING STALE CACHE")
                return stale
        raise result.cause

    def ttl_for(self, result: FetchOk) -> float:
        """Entry timeout for a fetched result: its ``max-age`` or the store default."""
        max_age = parse_max_age(result.headers)
        return self.cache.timeout if max_age is None else max_age

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _invoke(fetch: Fetcher, key: str) -> FetchResult:
        try:
            return fetch(key)
        except Exception as exc:
            return FetchErr(exc)

    def _is_fresh(self, key: str) -> bool:
        try:
            return self.cache.exists(key) and not self.cache.stale(key)
        except StorageIOError as exc:
            self.logger.debug(f"Cache check failed for {key}, treating as miss: {exc}")
            return False

    def _read(self, key: str) -> Any:
        # A fresh entry can vanish or turn unreadable between the check and
        # the read; both count as a miss.
        try:
            return self.cache.get(key, default=_MISS)
        except StorageIOError as exc:
            self.logger.debug(f"Cache read failed for {key}, treating as miss: {exc}")
            return _MISS

    def _has_fallback(self, key: str) -> bool:
        try:
            return self.cache.exists(key)
        except StorageIOError as exc:
            self.logger.debug(f"Cache check failed for {key}, no fallback: {exc}")
            return False

    def _store(self, key: str, result: FetchOk) -> None:
        try:
            self.cache.set(key, result.payload, self.ttl_for(result))
        except StorageIOError as exc:
            self._warn(f"Response for {key} was not cached: {exc}")

    def _warn(self, message: str) -> None:
        warn = getattr(self.logger, "warning", None)
        if callable(warn):
            warn(message)
        else:
            self.logger.info(message)
