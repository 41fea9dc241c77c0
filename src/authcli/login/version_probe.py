"""Background check for a newer published release.

:func:`fetch_latest_version` never raises: whenever the latest version
cannot be determined it answers with the version the caller already runs,
which reads as "no update needed". :class:`VersionProbe` runs that fetch in
a background thread so the login wait never pays for its latency.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Callable, Optional

from authcli.client import ApiClient
from authcli.exceptions import AuthcliError

logger = logging.getLogger(__name__)

RELEASES_LATEST_PATH = "/releases/latest"


def fetch_latest_version(client: ApiClient, current_version: str) -> str:
    """Return the latest published version, or *current_version* on any failure.

    Args:
        client: An entered, unauthenticated :class:`~authcli.client.ApiClient`.
        current_version: Version of the running tool.
    """
    try:
        response = client.get(RELEASES_LATEST_PATH)
    except AuthcliError as exc:
        logger.debug("Version check failed: %s", exc)
        return current_version

    if response.status_code != 200:
        logger.debug("Version check got HTTP %d", response.status_code)
        return current_version

    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.debug("Version check got a malformed body: %s", exc)
        return current_version

    latest = body.get("latest") if isinstance(body, dict) else None
    if not isinstance(latest, str) or not latest:
        logger.debug("Version check got an empty version for latest release")
        return current_version
    return latest


class VersionProbe:
    """Run :func:`fetch_latest_version` in a daemon thread.

    The result travels through a single-slot queue, so the worker never
    blocks on hand-off even if :meth:`result` is called late or never.

    Args:
        client_factory: Returns a fresh unauthenticated client; the probe
            opens and closes it inside its own thread.
        current_version: Version of the running tool.

    Example::

        probe = VersionProbe(lambda: create_client(config), __version__)
        probe.start()
        ...
        latest = probe.result()
    """

    def __init__(
        self,
        client_factory: Callable[[], ApiClient],
        current_version: str,
    ) -> None:
        self._client_factory = client_factory
        self._current_version = current_version
        self._results: queue.Queue[str] = queue.Queue(maxsize=1)
        self._thread: Optional[threading.Thread] = None
        self._latest: Optional[str] = None

    def start(self) -> None:
        """Launch the background fetch. Calling it twice is a no-op."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            name="authcli-version-probe",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        latest = self._current_version
        try:
            with self._client_factory() as client:
                latest = fetch_latest_version(client, self._current_version)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Version probe crashed: %s", exc)
        finally:
            self._results.put_nowait(latest)

    def result(self, timeout: Optional[float] = None) -> str:
        """Join the probe and return the latest version.

        Returns the current version if the probe was never started or does
        not answer within *timeout* seconds. Later calls return the first
        answer.
        """
        if self._latest is not None:
            return self._latest
        if self._thread is None:
            return self._current_version
        try:
            self._latest = self._results.get(timeout=timeout)
        except queue.Empty:
            logger.debug("Version probe did not answer within %ss", timeout)
            return self._current_version
        return self._latest
