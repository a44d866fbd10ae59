"""Exception hierarchy for icebox.

All exceptions inherit from :class:`IceboxError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`icebox.exit_codes`.
The top-level error handler in :func:`icebox.app.main` catches
``IceboxError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    IceboxError (exit 1)
    +-- ConfigurationError          (exit 3)
    |   +-- StoreNotFoundError      (exit 3)
    +-- UnsupportedOperationError   (exit 1)
    +-- StorageIOError              (exit 8)
    +-- FetchError                  (exit 6)
    +-- NotFoundError               (exit 4)

:class:`NotFoundError` is raised by :class:`~icebox.stores.base.Store`
implementations on a plain miss. It never escapes the
:class:`~icebox.cache.Cache` facade.
"""

from icebox.exit_codes import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_FETCH_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_STORAGE_ERROR,
)


class IceboxError(Exception):
    """Base exception for all icebox errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`icebox.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(IceboxError):
    """Raised when a required store option is missing or a config file is invalid."""

    exit_code = EXIT_CONFIGURATION_ERROR


class StoreNotFoundError(ConfigurationError):
    """Raised when a cache store name is not registered."""


class UnsupportedOperationError(IceboxError):
    """Raised when an operation of the abstract store contract is called directly."""

    exit_code = EXIT_GENERIC_FAILURE


class StorageIOError(IceboxError):
    """Raised when a backend fails to read or write an entry (disk I/O, pickling, remote KV)."""

    exit_code = EXIT_STORAGE_ERROR


class FetchError(IceboxError):
    """Raised when the upstream cannot be reached (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_FETCH_ERROR


class NotFoundError(IceboxError):
    """Raised by a store when no value is persisted for a key."""

    exit_code = EXIT_NOT_FOUND
