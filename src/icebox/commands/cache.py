"""Cache commands -- fetch through the cache and inspect entries.

Provides the ``icebox get``, ``icebox status`` and ``icebox stores``
commands. Each command resolves the effective configuration from the
global options stored in ``ctx.obj`` (see :func:`~icebox.app.main_callback`)
and :func:`~icebox.config.resolve_config`.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from icebox.exceptions import IceboxError
from icebox.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND, EXIT_SERVER_ERROR
from icebox.output import error, get_output, print_table


def _resolve(ctx: typer.Context) -> Any:
    from icebox.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(
        cli_store=obj.get("store"),
        cli_timeout=obj.get("timeout"),
        cli_location=obj.get("location"),
        cli_base_url=obj.get("base_url"),
    )


def _open_cache(config: Any) -> Any:
    """Build the cache; store diagnostics are only shown with ``--verbose``."""
    from icebox.cache import Cache

    output = get_output()
    return Cache.from_config(config.cache, logger=output if output.is_verbose else None)


def _parse_params(params: Optional[list[str]]) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in params or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            error(f"Invalid parameter '{item}', expected key=value")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        pairs.append((name, value))
    return pairs


def get_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Request path (joined to --base-url) or absolute URL."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Query parameter as key=value. Repeatable."
    ),
) -> None:
    """GET a resource through the cache.

    Prints the status line to stderr and the body to stdout. Exits with
    code 4 on HTTP 404 and 5 on HTTP 5xx. When the upstream is unreachable
    the last cached copy is printed, even if it is stale.

    Example::

        icebox --base-url https://api.example.com get /users -p page=2
        icebox --store file --timeout 600 get https://api.example.com/users
    """
    from icebox.client import CachingClient
    from icebox.client.response import format_api_response

    pairs = _parse_params(param)
    try:
        config = _resolve(ctx)
        cache = _open_cache(config)
        try:
            logger = get_output() if get_output().is_verbose else None
            with CachingClient(
                config.base_url, cache=cache, request=config.request, logger=logger
            ) as client:
                response = client.get(path, params=pairs or None)
        finally:
            cache.close()
    except IceboxError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_api_response(response)
    if response.status_code == 404:
        raise typer.Exit(code=EXIT_NOT_FOUND)
    if response.status_code >= 500:
        raise typer.Exit(code=EXIT_SERVER_ERROR)


def status_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Request path or absolute URL."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Query parameter as key=value. Repeatable."
    ),
) -> None:
    """Show whether a request is cached and whether the entry is stale.

    Example::

        icebox --store file status /users -p page=2
    """
    from icebox.keys import build_logical_key

    pairs = _parse_params(param)
    key = build_logical_key(path, pairs or None)
    try:
        config = _resolve(ctx)
        cache = _open_cache(config)
        try:
            exists = cache.exists(key)
            stale = cache.stale(key)
            storage_key = cache.encode(key)
        finally:
            cache.close()
    except IceboxError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_table(
        ["key", "storage_key", "store", "exists", "stale"],
        [[key, storage_key, config.cache.store, str(exists).lower(), str(stale).lower()]],
        title="Cache entry",
    )
    if not exists:
        raise typer.Exit(code=EXIT_NOT_FOUND)


def stores_command() -> None:
    """List the registered cache store backends.

    Backends published by installed packages under the ``icebox.stores``
    entry-point group are included.
    """
    from icebox.stores import available_stores, discover_stores, lookup_store

    discover_stores()
    rows = []
    for name in available_stores():
        store_cls = lookup_store(name)
        rows.append([name, f"{store_cls.__module__}.{store_cls.__name__}"])
    print_table(["name", "class"], rows, title="Cache stores")
