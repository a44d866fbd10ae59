"""Output formatting and diagnostic sinks with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (response bodies, JSON, tables).
* **stderr** -- all diagnostics (cache hits and misses, status lines,
  warnings, errors). Never contaminates the data stream.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes three layers:

1. :class:`LogSink` -- the protocol every cache and store logs through.
   Anything with ``info`` and ``debug`` methods qualifies, including
   :class:`logging.Logger`. :func:`make_sink` turns the values accepted by
   the ``logger=`` arguments into a sink.
2. :class:`OutputManager` -- a stateful object holding format preferences,
   Rich consoles, and quiet/verbose flags. It doubles as the default
   stderr sink.
3. Module-level convenience functions (:func:`info`, :func:`error`, ...)
   used by the CLI. They delegate to a global ``OutputManager`` installed
   by :func:`set_output`. Library code never reads the global instance;
   caches receive their sink explicitly.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, TextIO, runtime_checkable

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


@runtime_checkable
class LogSink(Protocol):
    """Destination for leveled cache diagnostics."""

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None: ...


class NullSink:
    """Sink that discards every message."""

    def info(self, message: str) -> None:
        pass

    def debug(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass


STDERR = "<stderr>"
"""Sentinel accepted by :func:`make_sink` meaning "log to standard error"."""


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise. Callers can force a specific
    format via the ``--json`` or ``--plain`` CLI flags.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Central manager for all output with stdout/stderr discipline.

    Maintains two Rich :class:`~rich.console.Console` instances -- one for
    stdout (data) and one for the diagnostic stream -- and routes every
    output call to the correct stream with appropriate formatting.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages.
        verbose: Enable debug-level messages.
        stream: Diagnostic stream. Defaults to ``sys.stderr``.
        close_stream: Close *stream* in :meth:`close`. Set when the manager
            opened the stream itself.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        stream: Optional[TextIO] = None,
        close_stream: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._stream = stream
        self._close_stream = close_stream and stream is not None

        # Resolve format: AUTO picks RICH for interactive TTY, PLAIN otherwise
        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        # Console for stdout (data output)
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )

        # Console for diagnostics
        self._stderr = Console(
            file=self._diagnostic_stream(),
            no_color=self._no_color,
            stderr=stream is None,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def close(self) -> None:
        """Close the diagnostic stream if this manager opened it."""
        if self._close_stream and not self._stream.closed:
            self._stream.close()

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any, content_type: str = "application/json") -> None:
        """Format and output response data to stdout.

        Dispatches to the appropriate renderer (JSON, plain, or Rich) based
        on the resolved :attr:`format`.

        Args:
            data: Response payload -- typically a dict, list, or raw string.
            content_type: MIME type hint used by the Rich renderer to choose
                syntax highlighting.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(data)
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            # RICH
            self._print_rich(data, content_type)

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table` with column
          headers.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values, one row per line.

        Args:
            headers: Column header strings.
            rows: List of rows, where each row is a list of cell strings.
            title: Optional table title (Rich mode only).
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))

        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))

        else:
            # RICH
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, escape(message))

    def success(self, message: str) -> None:
        """Print a green success message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning. NOT suppressed by ``--quiet``."""
        self._emit(f"Warning: {message}", f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print a bold-red error. Never suppressed."""
        self._emit(f"Error: {message}", f"[bold red]Error:[/bold red] {escape(message)}")

    def debug(self, message: str) -> None:
        """Print a debug message. Only shown when ``--verbose`` is active.

        Args:
            message: The debug text (prefixed with ``[debug]`` on output).
        """
        if self._verbose:
            self._emit(f"[debug] {message}", f"[dim]\\[debug] {escape(message)}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _diagnostic_stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def _emit(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=self._diagnostic_stream(), flush=True)
        else:
            self._stderr.print(markup, highlight=False)

    def _print_json(self, data: Any) -> None:
        """Print data as raw JSON to stdout."""
        if isinstance(data, str):
            # Try to parse as JSON for re-formatting; otherwise output as-is
            try:
                parsed = json.loads(data)
                self.print_data(json.dumps(parsed, indent=2, ensure_ascii=False, default=str))
            except (json.JSONDecodeError, TypeError):
                self.print_data(data)
        else:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def _print_plain(self, data: Any) -> None:
        """Print data as plain text to stdout."""
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))

    def _print_rich(self, data: Any, content_type: str) -> None:
        """Print data with Rich formatting to stdout."""
        if isinstance(data, (dict, list)):
            json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            syntax = Syntax(json_str, "json", theme="monokai", word_wrap=True)
            self._stdout.print(syntax)
        else:
            self._stdout.print(str(data), markup=False)


# ------------------------------------------------------------------ #
# Sink resolution
# ------------------------------------------------------------------ #


def make_sink(device: Any = STDERR) -> Any:
    """Turn a ``logger=`` argument into a :class:`LogSink`.

    Accepted values:

    * :data:`STDERR` -- a verbose, colourless :class:`OutputManager` on
      standard error.
    * ``None`` -- a :class:`NullSink`; the cache is silent.
    * a ``str`` or :class:`~pathlib.Path` -- an :class:`OutputManager`
      appending to that file. The sink owns the file; call its
      ``close()`` when done.
    * an object with ``info`` and ``debug`` methods (an
      :class:`OutputManager`, a :class:`logging.Logger`, ...) -- returned
      unchanged.
    * a writable text stream -- an :class:`OutputManager` writing to it.

    Raises:
        TypeError: For anything else.
    """
    if device is None:
        return NullSink()
    if isinstance(device, str) and device == STDERR:
        return OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
    if isinstance(device, (str, Path)):
        path = Path(device).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        stream = open(path, "a", encoding="utf-8")  # noqa: SIM115 -- owned by the sink
        return OutputManager(
            format=OutputFormat.PLAIN,
            no_color=True,
            verbose=True,
            stream=stream,
            close_stream=True,
        )
    if isinstance(device, LogSink):
        return device
    if hasattr(device, "write"):
        return OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True, stream=device)
    raise TypeError(f"Cannot use {type(device).__name__} as a cache logger")


def _is_tty() -> bool:
    """Return True if stdout is connected to an interactive terminal."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Check ``NO_COLOR`` and ``TERM=dumb`` environment conventions."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during CLI startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager` instance.

    If no instance has been installed via :func:`set_output`, a default
    ``OutputManager`` with ``AUTO`` format is created lazily.
    """
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance.

    Called once during CLI startup from :func:`~icebox.app.main_callback`.
    """
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def format_response(data: Any, content_type: str = "application/json") -> None:
    """Format and output response data to stdout via the global :class:`OutputManager`."""
    get_output().format_response(data, content_type)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    """Print a table to stdout via the global :class:`OutputManager`."""
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    """Print an informational message to stderr via the global :class:`OutputManager`."""
    get_output().info(message)


def error(message: str) -> None:
    """Print an error message to stderr via the global :class:`OutputManager`."""
    get_output().error(message)


def success(message: str) -> None:
    """Print a success message to stderr via the global :class:`OutputManager`."""
    get_output().success(message)


def warning(message: str) -> None:
    """Print a warning message to stderr via the global :class:`OutputManager`."""
    get_output().warning(message)


def debug(message: str) -> None:
    """Print a debug message to stderr via the global :class:`OutputManager`."""
    get_output().debug(message)
