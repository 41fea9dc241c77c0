"""Open the remote login page in the user's browser."""

from __future__ import annotations

import logging
import webbrowser
from urllib.parse import urlencode, urlparse, urlunparse

from authcli.exceptions import ConfigError
from authcli.output import emph, notice

logger = logging.getLogger(__name__)


def build_login_url(host: str, port: int) -> str:
    """Return *host* with ``port=<port>&redirect=true`` as its query string.

    Raises:
        ConfigError: If *host* is not an absolute http(s) URL.
    """
    parsed = urlparse(host)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"error parsing auth URL: {host!r} is not an http(s) URL")
    query = urlencode({"port": str(port), "redirect": "true"})
    return urlunparse(parsed._replace(query=query))


def open_login_page(host: str, port: int, launch: bool = True) -> str:
    """Point the user's browser at the login page for callback port *port*.

    A browser that cannot be opened (headless machine, no display, no
    registered browser) is not an error: the URL is printed instead so the
    user can open it by hand, and the login carries on waiting.

    Args:
        host: Base URL of the login page.
        port: Port of the local callback server.
        launch: When ``False``, skip the OS call and only print the URL.

    Returns:
        The login URL.
    """
    url = build_login_url(host, port)

    opened = False
    if launch:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as exc:
            logger.debug("webbrowser.open failed: %s", exc)
        except OSError as exc:
            logger.debug("Could not launch browser: %s", exc)

    if not opened:
        notice(f"Please open the following URL to login: {emph(url)}")
    return url
