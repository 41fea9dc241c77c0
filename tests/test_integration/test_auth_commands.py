"""Integration tests for the ``authcli auth`` command group.

Each test builds the full application with :func:`authcli.app.build_app`,
isolates the config and data directories, and replaces the remote API
with an :class:`httpx.MockTransport`. The browser is replaced by a
function that plays the login page's redirect against the real local
callback server.
"""

from __future__ import annotations

import json
import logging
import threading
from http.client import HTTPConnection
from pathlib import Path
from typing import Any, Optional
from unittest.mock import patch

import httpx
import pytest
import typer

from authcli import __version__
from authcli.app import _configure_logging, build_app, main
from authcli.exceptions import UnauthenticatedError
from authcli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_GENERIC_FAILURE,
)
from authcli.settings import SettingsStore


@pytest.fixture
def app() -> typer.Typer:
    return build_app()


@pytest.fixture
def api(fake_api, monkeypatch: pytest.MonkeyPatch):
    """Route every client the commands create to the fake API."""
    factory = fake_api.client_factory()

    def fake_create_client(config: Any, token: Optional[str] = None, transport: Any = None):
        return factory(token)

    monkeypatch.setattr("authcli.client.create_client", fake_create_client)
    fake_api.routes["/releases/latest"] = httpx.Response(200, json={"latest": __version__})
    return fake_api


def _browser_calling_back(query: str):
    def fake_open(host: str, port: int, launch: bool = True) -> str:
        def send_callback() -> None:
            conn = HTTPConnection("127.0.0.1", port, timeout=5)
            conn.request("GET", f"/?{query}")
            conn.getresponse().read()
            conn.close()

        threading.Thread(target=send_callback, daemon=True).start()
        return f"{host}?port={port}&redirect=true"

    return fake_open


def _stored(isolated_config: Path) -> dict[str, Any]:
    path = isolated_config / "data" / "authcli" / "settings.json"
    return json.loads(path.read_text())


class TestLogin:
    def test_login_stores_token(self, cli_runner, app, isolated_config: Path, api) -> None:
        with patch(
            "authcli.login.flow.open_login_page",
            side_effect=_browser_calling_back("jwt=abc123&username=alice"),
        ):
            result = cli_runner.invoke(app, ["--no-color", "auth", "login", "--timeout", "5"])

        assert result.exit_code == 0, result.output
        assert "Waiting for authentication..." in result.output
        assert "Success! Logged in as alice" in result.output
        assert _stored(isolated_config) == {"token": "abc123", "username": "alice"}

    def test_login_with_valid_token_is_noop(
        self, cli_runner, app, isolated_config: Path, api
    ) -> None:
        SettingsStore().set_token("still-good")
        api.routes["/v2/validate/token"] = httpx.Response(200)

        with patch("authcli.login.flow.start_callback_server") as mock_start:
            result = cli_runner.invoke(app, ["--no-color", "auth", "login"])

        assert result.exit_code == 0
        assert "Existing JWT still valid" in result.output
        mock_start.assert_not_called()

    def test_host_flag_reaches_browser(
        self, cli_runner, app, isolated_config: Path, api
    ) -> None:
        hosts: list[str] = []
        callback = _browser_calling_back("jwt=t")

        def recording_open(host: str, port: int, launch: bool = True) -> str:
            hosts.append(host)
            return callback(host, port, launch)

        with patch("authcli.login.flow.open_login_page", side_effect=recording_open):
            result = cli_runner.invoke(
                app,
                ["--no-color", "--host", "https://login.example.com", "auth", "login"],
            )

        assert result.exit_code == 0
        assert hosts == ["https://login.example.com"]

    def test_timeout_exits_cancelled(
        self, cli_runner, app, isolated_config: Path, api
    ) -> None:
        with patch("authcli.login.flow.open_login_page"):
            result = cli_runner.invoke(app, ["--no-color", "auth", "login", "--timeout", "0.2"])

        assert result.exit_code == EXIT_CANCELLED
        assert "No login callback received" in result.output
        assert "Try again: authcli auth login" in result.output

    def test_invalid_host_fails(self, cli_runner, app, isolated_config: Path, api) -> None:
        result = cli_runner.invoke(
            app, ["--no-color", "--host", "not a url", "auth", "login", "--timeout", "1"]
        )

        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "error parsing auth URL" in result.output

    def test_quiet_hides_progress(self, cli_runner, app, isolated_config: Path, api) -> None:
        with patch(
            "authcli.login.flow.open_login_page",
            side_effect=_browser_calling_back("jwt=q"),
        ):
            result = cli_runner.invoke(app, ["--no-color", "-q", "auth", "login"])

        assert result.exit_code == 0
        assert "Waiting for authentication" not in result.output
        assert _stored(isolated_config)["token"] == "q"


class TestLogout:
    def test_logged_out(self, cli_runner, app, isolated_config: Path, api) -> None:
        result = cli_runner.invoke(app, ["--no-color", "auth", "logout"])

        assert result.exit_code == 0
        assert "No user logged in." in result.output
        assert api.requests == []

    def test_clears_token(self, cli_runner, app, isolated_config: Path, api) -> None:
        SettingsStore().set_token("tok", username="alice")

        result = cli_runner.invoke(app, ["--no-color", "auth", "logout"])

        assert result.exit_code == 0
        assert "Logged out." in result.output
        assert _stored(isolated_config) == {"token": "", "username": ""}
        assert api.requests == []


class TestToken:
    def test_prints_valid_token(self, cli_runner, app, isolated_config: Path, api) -> None:
        SettingsStore().set_token("eyJ.payload.sig")
        api.routes["/v2/validate/token"] = httpx.Response(200)

        result = cli_runner.invoke(app, ["--no-color", "auth", "token"])

        assert result.exit_code == 0
        assert result.output.strip() == "eyJ.payload.sig"

    def test_no_token(self, cli_runner, app, isolated_config: Path, api) -> None:
        result = cli_runner.invoke(app, ["--no-color", "auth", "token"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "no user logged in" in result.output
        assert "authcli auth login" in result.output

    def test_rejected_token(self, cli_runner, app, isolated_config: Path, api) -> None:
        SettingsStore().set_token("revoked")
        api.routes["/v2/validate/token"] = httpx.Response(401)

        result = cli_runner.invoke(app, ["--no-color", "auth", "token"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "revoked" not in result.output

    def test_corrupt_settings(self, cli_runner, app, isolated_config: Path, api) -> None:
        path = isolated_config / "data" / "authcli" / "settings.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{broken")

        result = cli_runner.invoke(app, ["--no-color", "auth", "token"])

        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "could not retrieve local config" in result.output


class TestRootApp:
    def test_version(self, cli_runner, app) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip() == f"authcli {__version__}"

    def test_auth_help_lists_commands(self, cli_runner, app) -> None:
        result = cli_runner.invoke(app, ["auth", "--help"])
        assert result.exit_code == 0
        for name in ("login", "logout", "token"):
            assert name in result.output


class TestMain:
    def test_authcli_error_exits_with_its_code(self, isolated_config: Path, quiet_output) -> None:
        with patch("authcli.app._setup_signal_handlers"), patch(
            "authcli.app.build_app", side_effect=UnauthenticatedError("nope")
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == EXIT_AUTH_FAILURE

    def test_unexpected_error_writes_crash_log(
        self, isolated_config: Path, quiet_output
    ) -> None:
        with patch("authcli.app._setup_signal_handlers"), patch(
            "authcli.app.build_app", side_effect=RuntimeError("kaboom")
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == EXIT_GENERIC_FAILURE
        logs = list((isolated_config / "data" / "authcli" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "kaboom" in logs[0].read_text()


class TestLogging:
    def test_verbose_routes_debug_to_stderr(self, capsys) -> None:
        _configure_logging(verbose=True)
        logging.getLogger("authcli.login.flow").debug("login: checking -> awaiting")
        assert "[DEBUG] authcli.login.flow: login: checking -> awaiting" in capsys.readouterr().err

    def test_default_hides_debug(self, capsys) -> None:
        _configure_logging(verbose=False)
        logging.getLogger("authcli.login.flow").debug("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_reconfiguring_keeps_one_handler(self) -> None:
        _configure_logging(verbose=False)
        _configure_logging(verbose=True)
        assert len(logging.getLogger("authcli").handlers) == 1

    def test_verbose_cli_run_logs_to_its_stderr(
        self, cli_runner, app, isolated_config: Path, api
    ) -> None:
        SettingsStore().set_token("tok")
        api.routes["/v2/validate/token"] = httpx.Response(401)

        first = cli_runner.invoke(app, ["--no-color", "-v", "auth", "token"])
        second = cli_runner.invoke(app, ["--no-color", "-v", "auth", "token"])

        assert first.exit_code == EXIT_AUTH_FAILURE
        assert "[DEBUG] authcli.client: GET" in first.output
        assert "[DEBUG] authcli.client: GET" in second.output
