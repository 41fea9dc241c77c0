"""Exception hierarchy for authcli.

All exceptions inherit from :class:`AuthcliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`authcli.exit_codes`.
The top-level error handler in :func:`authcli.app.main` catches
``AuthcliError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    AuthcliError (exit 1)
    +-- ConfigError           (exit 1)
    +-- PersistenceError      (exit 1)
    +-- TemplateError         (exit 1)
    +-- UnauthenticatedError  (exit 3)
    +-- ConnectionError_      (exit 6)
    |   +-- PortAllocationError
    +-- LoginCancelledError   (exit 130)

Browser launch failures and version probe failures have no exception
type: they are contained by their components and never reach the caller.
"""

from authcli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class AuthcliError(Exception):
    """Base exception for all authcli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`authcli.exit_codes`. The entry point catches
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


class ConfigError(AuthcliError):
    """Raised for configuration problems (invalid config JSON, unparsable host URL)."""

    exit_code = EXIT_GENERIC_FAILURE


class PersistenceError(AuthcliError):
    """Raised when the local settings file cannot be read or written."""

    exit_code = EXIT_GENERIC_FAILURE


class TemplateError(AuthcliError):
    """Raised when the callback confirmation page cannot be loaded or compiled."""

    exit_code = EXIT_GENERIC_FAILURE


class UnauthenticatedError(AuthcliError):
    """Raised when no token is stored or the stored token fails remote validation."""

    exit_code = EXIT_AUTH_FAILURE


class ConnectionError_(AuthcliError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class PortAllocationError(ConnectionError_):
    """Raised when no local TCP port can be bound for the callback server."""


class LoginCancelledError(AuthcliError):
    """Raised when the browser callback does not arrive before the deadline."""

    exit_code = EXIT_CANCELLED
