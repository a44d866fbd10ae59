"""Built-in CLI sub-commands for icebox.

* :mod:`~icebox.commands.cache` -- ``get``, ``status`` and ``stores``.
* :mod:`~icebox.commands.config` -- view and modify global settings.

Single commands are plain callback functions registered on the root app;
multi-command groups like ``config`` export a :class:`typer.Typer`
sub-application.
"""
