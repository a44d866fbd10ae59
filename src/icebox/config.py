"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for icebox:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.icebox/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~icebox.models.GlobalConfig`
  JSON file storing defaults (store backend, timeout, transport settings).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes, including the entries of
:class:`~icebox.stores.filesystem.FileStore`, use an atomic
temp-file-then-rename strategy (:func:`atomic_write`) so that readers never
observe a partially written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from icebox.exceptions import ConfigurationError
from icebox.models import GlobalConfig

_APP_NAME = "icebox"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "icebox.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/icebox/`` (default ``~/.config/icebox/``).
    On macOS/Windows: ``~/.icebox/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Default home of the ``file`` and ``disk`` stores. Cached data can be
    safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/icebox/`` (default ``~/.cache/icebox/``).
    On macOS/Windows: ``~/.icebox/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/icebox/`` (default ``~/.local/share/icebox/``).
    On macOS/Windows: ``~/.icebox/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: Union[str, bytes]) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file.
        data: Text (written as UTF-8) or raw bytes.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    binary = isinstance(data, bytes)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb" if binary else "w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding=None if binary else "utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~icebox.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigurationError: If the file exists but contains invalid JSON or
            fails Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./icebox.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. Its keys mirror :class:`~icebox.models.GlobalConfig`
    and are merged section by section.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigurationError: If the file exists but does not contain a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid project config at {path}: expected an object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_store: Optional[str] = None,
    cli_timeout: Optional[float] = None,
    cli_location: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--store``, ``--timeout``, ``--location``, ``--base-url``)
        2. Environment variables (``ICEBOX_STORE``, ``ICEBOX_TIMEOUT``,
           ``ICEBOX_LOCATION``, ``ICEBOX_BASE_URL``)
        3. Project config (``./icebox.json``)
        4. User config (``~/.config/icebox/config.json``)
        5. Defaults (file store, 60 second timeout)

    Returns:
        The effective :class:`~icebox.models.GlobalConfig`.

    Raises:
        ConfigurationError: If any layer holds an invalid value.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    data = load_global_config().model_dump(mode="json")

    # 3. Layer in project-local config
    project = load_project_config()
    if project is not None:
        for section, value in project.items():
            if isinstance(value, dict) and isinstance(data.get(section), dict):
                data[section].update(value)
            else:
                data[section] = value

    # 2. Environment variables
    env_timeout = os.environ.get("ICEBOX_TIMEOUT")
    overrides: dict[str, Any] = {
        "store": os.environ.get("ICEBOX_STORE") or None,
        "timeout": env_timeout or None,
        "location": os.environ.get("ICEBOX_LOCATION") or None,
    }
    env_base_url = os.environ.get("ICEBOX_BASE_URL")

    # 1. CLI flags (highest precedence)
    if cli_store is not None:
        overrides["store"] = cli_store
    if cli_timeout is not None:
        overrides["timeout"] = cli_timeout
    if cli_location is not None:
        overrides["location"] = cli_location

    data["cache"].update({k: v for k, v in overrides.items() if v is not None})
    if cli_base_url is not None:
        data["base_url"] = cli_base_url
    elif env_base_url:
        data["base_url"] = env_base_url

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
