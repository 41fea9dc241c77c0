"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for authcli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.authcli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single read-only :class:`~authcli.models.GlobalConfig`
  JSON file, edited by hand, storing the login host, API URL and timeouts.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the global config file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so that a crash never leaves a half-written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from authcli.exceptions import ConfigError
from authcli.models import GlobalConfig

_APP_NAME = "authcli"
_CONFIG_FILENAME = "config.json"

ENV_HOST = "AUTHCLI_HOST"
ENV_API_URL = "AUTHCLI_API_URL"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/authcli/`` (default ``~/.config/authcli/``).
    On macOS/Windows: ``~/.authcli/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (settings, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authcli/`` (default ``~/.local/share/authcli/``).
    On macOS/Windows: ``~/.authcli/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and *path* keeps its previous content.

    Args:
        path: Destination file.
        data: Text to write.
        mode: Optional permission bits applied to the temp file before any
            content is written (e.g. ``0o600`` for secrets).
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
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
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~authcli.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_config(cli_host: Optional[str] = None) -> GlobalConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. The ``--host`` flag (``cli_host``; there is no flag for the API URL)
        2. Environment variables (``AUTHCLI_HOST``, ``AUTHCLI_API_URL``)
        3. User config (``~/.config/authcli/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~authcli.models.GlobalConfig`.
    """
    config = load_global_config()

    env_host = os.environ.get(ENV_HOST)
    if env_host:
        config.host = env_host
    env_api_url = os.environ.get(ENV_API_URL)
    if env_api_url:
        config.api_url = env_api_url

    if cli_host is not None:
        config.host = cli_host

    return config
