"""Typer application and CLI entry point for icebox.

This module wires together the top-level Typer application and registers
the built-in commands (``get``, ``status``, ``stores``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`icebox.config`: Configuration resolution.
    :mod:`icebox.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from icebox import __version__
from icebox.commands.cache import get_command, status_command, stores_command
from icebox.commands.config import config_app
from icebox.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="icebox",
    help="Transparent response cache for HTTP GET calls.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("get")(get_command)
app.command("status")(status_command)
app.command("stores")(stores_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"icebox {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    store: Optional[str] = typer.Option(
        None,
        "--store",
        "-s",
        help="Cache store backend (file by default; memory, disk, redis, ...).",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Default entry timeout in seconds."
    ),
    location: Optional[str] = typer.Option(
        None, "--location", "-l", help="Store directory or server URL."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-b", help="Base URL prepended to request paths."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show cache hits, misses and writes."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~icebox.output.OutputManager` from
    CLI flags and stores the cache overrides (``store``, ``timeout``,
    ``location``, ``base_url``) in ``ctx.obj`` for the sub-commands.
    """
    from icebox.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["store"] = store
    ctx.obj["timeout"] = timeout
    ctx.obj["location"] = location
    ctx.obj["base_url"] = base_url
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from icebox.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``icebox`` console script.

    Unhandled :class:`~icebox.exceptions.IceboxError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from icebox.exceptions import IceboxError
        from icebox.output import error

        if isinstance(exc, IceboxError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
