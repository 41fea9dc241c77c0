"""Login orchestration -- the browser round trip from start to stored token.

:class:`LoginFlow` walks through these states::

    CHECKING_EXISTING_CREDENTIAL -> AWAITING_CALLBACK -> PERSISTING
        -> REPORTING_OUTCOME -> DONE

and ends in ``FAILED`` when any step raises. A stored token that still
validates short-circuits straight to ``DONE`` without binding a port or
opening a browser.

Ordering inside one run:

1. the first callback value is received,
2. the callback server is stopped,
3. the token is written to settings,
4. the version probe is joined and reported.

The callback server is stopped on every exit path, including timeouts,
Ctrl-C and persistence failures.

The module also holds the two small companions of ``login``:
:func:`logout` and :func:`show_token`.
"""

from __future__ import annotations

import logging
import queue
from typing import Callable, Optional

from authcli import __version__
from authcli.client import ApiClient
from authcli.exceptions import ConnectionError_, LoginCancelledError, UnauthenticatedError
from authcli.login.browser import open_login_page
from authcli.login.callback_server import ServerHandle, start_callback_server
from authcli.login.version_probe import VersionProbe
from authcli.models import CallbackResult, LoginOutcome, LoginResult, LoginState
from authcli.output import emph, info, success
from authcli.settings import SettingsStore

logger = logging.getLogger(__name__)

VALIDATE_TOKEN_PATH = "/v2/validate/token"

ClientFactory = Callable[[Optional[str]], ApiClient]
"""Builds an :class:`ApiClient`; the argument is the bearer token or ``None``."""

_LOGIN_HINT = "Run `authcli auth login` to log in and get a token"


def is_token_valid(token: str, client_factory: ClientFactory) -> bool:
    """Ask the API whether *token* is still accepted.

    An empty token is invalid without any network call. A network failure
    counts as invalid.
    """
    if not token:
        return False
    try:
        with client_factory(token) as client:
            response = client.get(VALIDATE_TOKEN_PATH)
    except ConnectionError_ as exc:
        logger.debug("Token validation failed: %s", exc)
        return False
    return response.status_code == 200


class LoginFlow:
    """Obtain a token through the browser and store it.

    Args:
        store: Where the token is read from and written to.
        client_factory: Builds API clients for token validation and the
            version probe.
        host: Base URL of the remote login page.
        current_version: Version of the running tool, compared against
            the latest release.
        callback_timeout: Seconds to wait for the browser callback.
            ``None`` or ``0`` waits until the process is interrupted.
        check_version: Run the version probe while waiting.
        version_timeout: Upper bound in seconds on joining the version
            probe once the token is stored.
        launch_browser: When ``False`` the login URL is only printed.

    Example::

        flow = LoginFlow(SettingsStore(), factory, "https://login.example.com")
        result = flow.run()
    """

    def __init__(
        self,
        store: SettingsStore,
        client_factory: ClientFactory,
        host: str,
        current_version: str = __version__,
        callback_timeout: Optional[float] = None,
        check_version: bool = True,
        version_timeout: Optional[float] = None,
        launch_browser: bool = True,
    ) -> None:
        self._store = store
        self._client_factory = client_factory
        self._host = host
        self._current_version = current_version
        self._callback_timeout = callback_timeout or None
        self._check_version = check_version
        self._version_timeout = version_timeout
        self._launch_browser = launch_browser
        self._state = LoginState.CHECKING_EXISTING_CREDENTIAL

    @property
    def state(self) -> LoginState:
        """The state the flow is in (terminal once :meth:`run` returns or raises)."""
        return self._state

    def _transition(self, state: LoginState) -> None:
        logger.debug("login: %s -> %s", self._state.value, state.value)
        self._state = state

    def run(self) -> LoginResult:
        """Execute the flow once.

        Returns:
            A :class:`~authcli.models.LoginResult` describing how the
            login finished.

        Raises:
            PersistenceError: If settings cannot be read or written.
            TemplateError: If the confirmation page cannot be prepared.
            PortAllocationError: If no local port can be bound.
            LoginCancelledError: If the callback does not arrive in time.
            ConfigError: If the login host is not a valid URL.
        """
        try:
            result = self._run()
        except BaseException:
            self._transition(LoginState.FAILED)
            raise
        self._transition(LoginState.DONE)
        return result

    def _run(self) -> LoginResult:
        self._transition(LoginState.CHECKING_EXISTING_CREDENTIAL)
        existing = self._store.get_token()
        if is_token_valid(existing, self._client_factory):
            success("Success! Existing JWT still valid")
            return LoginResult(
                LoginOutcome.ALREADY_VALID,
                existing,
                username=self._store.get_username(),
            )

        self._transition(LoginState.AWAITING_CALLBACK)
        info("Waiting for authentication...")
        port, handle = start_callback_server()
        try:
            open_login_page(self._host, port, launch=self._launch_browser)
            probe = self._start_version_probe()
            callback = self._wait_for_callback(handle)

            self._transition(LoginState.PERSISTING)
            handle.stop()
            if not callback.jwt:
                logger.debug("Callback carried an empty jwt; storing it as-is")
            self._store.set_token(callback.jwt, username=callback.username)
        finally:
            handle.stop()

        self._transition(LoginState.REPORTING_OUTCOME)
        return self._report(callback, probe)

    def _start_version_probe(self) -> Optional[VersionProbe]:
        if not self._check_version:
            return None
        probe = VersionProbe(lambda: self._client_factory(None), self._current_version)
        probe.start()
        return probe

    def _wait_for_callback(self, handle: ServerHandle) -> CallbackResult:
        try:
            return handle.wait(timeout=self._callback_timeout)
        except queue.Empty:
            raise LoginCancelledError(
                f"No login callback received within {self._callback_timeout:g} seconds"
            ) from None

    def _report(self, callback: CallbackResult, probe: Optional[VersionProbe]) -> LoginResult:
        latest = probe.result(timeout=self._version_timeout) if probe is not None else None

        if callback.username:
            success(f"Success! Logged in as {emph(callback.username)}")
        else:
            success("Success!")

        update_available = latest is not None and latest != self._current_version
        if update_available:
            info("")
            info(
                "Friendly reminder that there's a newer version of "
                f"{emph('authcli')} available."
            )
            info(
                f"You're currently using version {emph(self._current_version)} "
                f"while latest available version is {emph(latest)}."
            )
            info("Please consider updating to get new features and more stable experience.")
            info("")

        return LoginResult(
            LoginOutcome.LOGGED_IN,
            callback.jwt,
            username=callback.username,
            latest_version=latest,
            update_available=update_available,
        )


def logout(store: SettingsStore) -> bool:
    """Forget the stored token. Never touches the network.

    Returns:
        ``True`` if a token was cleared, ``False`` if nobody was logged in.
    """
    if not store.get_token():
        info("No user logged in.")
        return False
    store.set_token("", username="")
    success("Logged out.")
    return True


def show_token(store: SettingsStore, client_factory: ClientFactory) -> str:
    """Return the stored token after checking it with the API.

    Raises:
        UnauthenticatedError: If no token is stored or the API rejects it.
    """
    token = store.get_token()
    if not is_token_valid(token, client_factory):
        raise UnauthenticatedError(f"no user logged in. {_LOGIN_HINT}")
    return token
