"""Persistent token storage.

Stores the logged-in user's token in ``~/.local/share/authcli/settings.json``
(XDG) or the platform-equivalent directory. Files are written atomically
via :func:`~authcli.config.atomic_write` with ``0o600`` permissions so that
the token is never world-readable, even momentarily.

The login flow only needs two operations from this module,
:meth:`SettingsStore.get_token` and :meth:`SettingsStore.set_token`; the
username is kept alongside for display.

See Also:
    :class:`~authcli.login.flow.LoginFlow` -- the only writer during login.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from authcli.config import atomic_write, get_data_dir
from authcli.exceptions import PersistenceError
from authcli.models import Settings

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"


class SettingsStore:
    """Read/write the local :class:`~authcli.models.Settings` file.

    The file is loaded lazily on first access and cached. Every setter
    writes the whole file atomically; if the write fails the cached copy
    is rolled back so memory and disk never disagree.

    Args:
        path: Optional explicit file path. Defaults to
            ``<data_dir>/settings.json``.

    Example::

        store = SettingsStore()
        store.set_token("tok123")
        assert store.get_token() == "tok123"
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or (get_data_dir() / _SETTINGS_FILENAME)
        self._settings: Optional[Settings] = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """The filesystem path to the settings file."""
        return self._path

    def load(self) -> Settings:
        """Load settings from disk, returning defaults when the file is absent.

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed.
        """
        if self._settings is not None:
            return self._settings
        if not self._path.is_file():
            self._settings = Settings()
            return self._settings
        try:
            text = self._path.read_text(encoding="utf-8")
            self._settings = Settings.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValueError) as exc:
            raise PersistenceError(
                f"could not retrieve local config: invalid settings file {self._path}: {exc}"
            ) from exc
        except OSError as exc:
            raise PersistenceError(
                f"could not retrieve local config: {exc}"
            ) from exc
        return self._settings

    def save(self, settings: Settings) -> None:
        """Persist *settings* atomically with ``0o600`` permissions.

        Raises:
            PersistenceError: If the file cannot be written. The previous
                file content is left untouched.
        """
        text = json.dumps(settings.model_dump(mode="json"), indent=2) + "\n"
        try:
            atomic_write(self._path, text, mode=0o600)
        except OSError as exc:
            raise PersistenceError(
                f"error persisting token on local config: {exc}"
            ) from exc
        self._settings = settings
        logger.debug("Saved settings to %s", self._path)

    def get_token(self) -> str:
        """Return the stored token, or ``""`` when nobody is logged in."""
        return self.load().token

    def set_token(self, token: str, username: Optional[str] = None) -> None:
        """Store *token* (``""`` logs the user out).

        Args:
            token: The token to store.
            username: When given, stored in the same write as *token*.
        """
        update: dict[str, str] = {"token": token}
        if username is not None:
            update["username"] = username
        with self._lock:
            current = self.load()
            self.save(current.model_copy(update=update))

    def get_username(self) -> str:
        """Return the username recorded at the last login."""
        return self.load().username
