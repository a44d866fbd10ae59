"""Config commands -- view and modify global configuration.

Provides the ``icebox config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~icebox.models.GlobalConfig`). Settings are persisted in the
icebox config directory and control defaults such as the store backend,
its timeout and location, and the base URL.
"""

from __future__ import annotations

import typer

from icebox.exit_codes import EXIT_INVALID_USAGE
from icebox.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    effective: bool = typer.Option(
        False, "--effective", help="Show the merged configuration including env and project overrides."
    ),
) -> None:
    """Show current configuration.

    Example::

        icebox config show
        icebox --json config show --effective
    """
    from icebox.config import get_config_dir, load_global_config, resolve_config
    from icebox.exceptions import ConfigurationError

    try:
        config = resolve_config() if effective else load_global_config()
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool, int, float or str). Unknown keys under
    ``cache`` are accepted as backend-specific store options. The updated
    config is validated against :class:`~icebox.models.GlobalConfig`
    before saving.

    Example::

        icebox config set cache.store file
        icebox config set cache.timeout 600
        icebox config set cache.prefix myapp:
    """
    from icebox.config import load_global_config, save_global_config
    from icebox.exceptions import ConfigurationError
    from icebox.models import GlobalConfig

    try:
        config = load_global_config()
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    data = config.model_dump(mode="json")

    # Navigate the dot-separated key path.
    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target and keys[0] != "cache":
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    # Type coerce the value to match the current field type.
    current = target.get(final_key)
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, (int, float)):
        try:
            coerced = type(current)(value)
        except ValueError:
            error(f"Expected a number for {key}, got: {value}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Replaces the persisted global config with a fresh
    :class:`~icebox.models.GlobalConfig` instance containing all default
    values. Asks for confirmation unless ``--force`` is given.

    Example::

        icebox config reset --force
    """
    from icebox.config import save_global_config
    from icebox.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
