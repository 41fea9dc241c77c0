"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~authcli.exceptions.AuthcliError` subclass.
Shell wrappers can inspect the exit code to tell a missing login apart from
a broken network without parsing stderr.

Example::

    $ authcli auth token
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- nobody is logged in
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (bad config, unreadable settings, ...)."""

EXIT_AUTH_FAILURE = 3
"""No credential is stored or the stored one was rejected."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred, or no local port could be bound."""

EXIT_CANCELLED = 130
"""The login was abandoned (timeout or Ctrl-C)."""
