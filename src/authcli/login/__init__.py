"""Browser-delegated login.

The pieces, leaves first:

- :mod:`~authcli.login.callback_server` -- ephemeral local HTTP listener
  that receives the token from the browser redirect.
- :mod:`~authcli.login.browser` -- builds the login URL and opens it,
  printing it when no browser can be launched.
- :mod:`~authcli.login.version_probe` -- background "is there a newer
  release" check that never fails.
- :mod:`~authcli.login.flow` -- :class:`LoginFlow`, which sequences the
  above, plus :func:`logout` and :func:`show_token`.

Typical usage::

    from authcli.login import LoginFlow

    result = LoginFlow(store, client_factory, host).run()
"""

from authcli.login.callback_server import ServerHandle, start_callback_server
from authcli.login.flow import LoginFlow, is_token_valid, logout, show_token
from authcli.login.version_probe import VersionProbe, fetch_latest_version

__all__ = [
    "LoginFlow",
    "ServerHandle",
    "VersionProbe",
    "fetch_latest_version",
    "is_token_valid",
    "logout",
    "show_token",
    "start_callback_server",
]
