"""Synchronous HTTP client for the remote API.

This module provides :class:`ApiClient`, a thin wrapper around
:class:`httpx.Client` used for the two remote calls the login handshake
makes:

- ``GET /v2/validate/token`` -- authenticated, decides whether a stored
  token is still good.
- ``GET /releases/latest`` -- unauthenticated, feeds the version probe.

Unlike a general-purpose API client, :class:`ApiClient` does not map HTTP
status codes to exceptions: both callers interpret the status themselves.
Only transport failures are translated, into
:class:`~authcli.exceptions.ConnectionError_`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from authcli import __version__
from authcli.exceptions import ConnectionError_
from authcli.models import GlobalConfig

logger = logging.getLogger(__name__)


class ApiClient:
    """HTTP client bound to the API base URL.

    Must be used as a context manager so that the underlying connection
    pool is opened and closed deterministically.

    Args:
        base_url: API base URL, e.g. ``https://api.example.com``.
        token: Optional bearer token sent as ``Authorization`` header.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport; tests pass an
            :class:`httpx.MockTransport` here.

    Example::

        with ApiClient("https://api.example.com", token="tok") as client:
            response = client.get("/v2/validate/token")
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ApiClient:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"authcli/{__version__}",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        """Send a GET request and return the raw response.

        Args:
            path: URL path appended to the base URL.
            params: Optional query parameters.

        Returns:
            The :class:`httpx.Response`, whatever its status code.

        Raises:
            ConnectionError_: On network or timeout errors.
        """
        if self._client is None:
            raise RuntimeError("ApiClient must be used as a context manager")
        logger.debug("GET %s%s", self._base_url, path)
        try:
            response = self._client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise ConnectionError_(f"Request timed out: GET {path}") from exc
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Connection failed: GET {path}: {exc}") from exc
        logger.debug("GET %s -> %d", path, response.status_code)
        return response


def create_client(
    config: GlobalConfig,
    token: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ApiClient:
    """Build an :class:`ApiClient` from the effective configuration.

    Args:
        config: Resolved global configuration.
        token: Bearer token for authenticated calls; ``None`` for
            unauthenticated ones.
        transport: Optional httpx transport override.
    """
    return ApiClient(
        config.effective_api_url,
        token=token,
        timeout=config.request_timeout,
        transport=transport,
    )
