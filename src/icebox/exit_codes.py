"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~icebox.exceptions.IceboxError` subclass.
Shell wrappers can inspect the exit code to tell a configuration mistake
from an upstream outage without parsing stderr.

Example::

    $ icebox --store nosuch get /users
    $ echo $?
    3   # EXIT_CONFIGURATION_ERROR -- unknown store backend
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIGURATION_ERROR = 3
"""A required option was missing or an unknown store backend was requested."""

EXIT_NOT_FOUND = 4
"""The upstream returned HTTP 404, or no cached entry exists."""

EXIT_SERVER_ERROR = 5
"""The upstream returned an HTTP 5xx server error."""

EXIT_FETCH_ERROR = 6
"""The upstream could not be reached and no cached copy was available."""

EXIT_STORAGE_ERROR = 8
"""A cache backend failed to read or write an entry."""
