"""Canonical Pydantic models shared across all icebox modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`StoreConfig`, :class:`RequestConfig`, :class:`OutputConfig`
    and :class:`GlobalConfig`.

**Cached payload models** -- values written into a store by
:class:`~icebox.client.CachingClient`:
    :class:`CachedResponse`.

All models use Pydantic v2. :class:`StoreConfig` accepts backend-specific
extensions with ``extra="allow"`` so that unknown keys (``prefix``,
``socket_timeout``, ...) are preserved in ``model_extra`` and handed to
the store implementation untouched.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_STORE = "memory"
"""Backend used when none is configured."""

DEFAULT_CLI_STORE = "file"
"""Backend in a default :class:`GlobalConfig`, which the CLI starts from."""

DEFAULT_TIMEOUT = 60
"""Entry timeout in seconds used when none is configured."""


# --- Store Config ---


class StoreConfig(BaseModel):
    """Configuration bundle handed to a :class:`~icebox.stores.base.Store`.

    ``store`` selects the backend by its registered name, ``timeout`` is the
    default entry lifetime in seconds and ``location`` is the directory or
    address for backends that need one. ``timeout`` is optional at the
    model level so that a bundle built by hand without it reaches the store
    constructor, which rejects it with
    :class:`~icebox.exceptions.ConfigurationError`.

    Backend-specific options are kept in ``model_extra``.

    Example::

        StoreConfig(store="redis", timeout=600, location="redis://cache:6379/1",
                    prefix="api:")
    """

    model_config = ConfigDict(extra="allow")

    store: str = Field(
        default=DEFAULT_STORE, description="Store backend: memory, file, disk, redis"
    )
    timeout: Optional[float] = Field(
        default=None, ge=0, description="Default entry timeout in seconds"
    )
    location: Optional[str] = Field(
        default=None, description="Directory path or server address for the backend"
    )

    def option(self, name: str, default: Any = None) -> Any:
        """Return a backend-specific option from ``model_extra``."""
        return (self.model_extra or {}).get(name, default)


class RequestConfig(BaseModel):
    """HTTP transport settings used by :class:`~icebox.client.CachingClient`."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=0, ge=0, description="Retry attempts on transport errors"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/icebox/config.json``.

    Loaded and saved by :func:`~icebox.config.load_global_config` and
    :func:`~icebox.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~icebox.config.resolve_config`
    for the full precedence chain.
    """

    base_url: Optional[str] = Field(
        default=None, description="Base URL prepended to request paths"
    )
    cache: StoreConfig = Field(
        default_factory=lambda: StoreConfig(store=DEFAULT_CLI_STORE, timeout=DEFAULT_TIMEOUT)
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator("cache", mode="before")
    @classmethod
    def _fill_cache_defaults(cls, value: Any) -> Any:
        """A partial ``cache`` section keeps the default store and timeout."""
        if isinstance(value, dict):
            value = {"store": DEFAULT_CLI_STORE, "timeout": DEFAULT_TIMEOUT, **value}
        return value


# --- Cached payloads ---


class CachedResponse(BaseModel):
    """A GET response captured for storage.

    Stored instead of the live :class:`httpx.Response` so that the value can
    be pickled by out-of-process backends.
    """

    url: str
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    content: bytes = b""
