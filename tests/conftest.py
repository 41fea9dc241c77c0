"""Shared test fixtures for authcli.

Provides isolated config/data directories, a quiet output manager, a
settings store on disk, helpers for faking the remote API with
:class:`httpx.MockTransport`, and the Typer CLI runner. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from authcli.client import ApiClient
from authcli.output import OutputManager, reset_output, set_output
from authcli.settings import SettingsStore


API_URL = "https://api.example.com"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stderr at creation time.
    When Typer's CliRunner redirects those streams during a test and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Detach the stderr handler installed by the root callback."""
    yield
    from authcli import app as app_module

    logger = logging.getLogger("authcli")
    if app_module._log_handler is not None:
        logger.removeHandler(app_module._log_handler)
        app_module._log_handler = None
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    forces the XDG layout regardless of platform, and clears all AUTHCLI_*
    environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("authcli.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["AUTHCLI_HOST", "AUTHCLI_API_URL"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store(tmp_path: Path) -> SettingsStore:
    """A settings store backed by a file in tmp_path."""
    return SettingsStore(tmp_path / "settings.json")


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless OutputManager for tests that don't check output."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a colourless OutputManager so messages can be asserted with capsys."""
    output = OutputManager(no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Fake remote API
# ---------------------------------------------------------------------------


class FakeApi:
    """Programmable stand-in for the remote API.

    Routes are keyed by path; each value is either a ready
    :class:`httpx.Response` or an exception instance to raise. Every
    request is recorded in :attr:`requests`.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(route, Exception):
            raise route
        return route

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def client_factory(self) -> Callable[[Optional[str]], ApiClient]:
        """Return a client factory whose clients talk to this fake."""
        transport = httpx.MockTransport(self.handler)

        def factory(token: Optional[str]) -> ApiClient:
            return ApiClient(API_URL, token=token, timeout=5, transport=transport)

        return factory


@pytest.fixture
def fake_api() -> FakeApi:
    """A fresh :class:`FakeApi` with no routes."""
    return FakeApi()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
