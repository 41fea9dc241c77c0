"""Canonical models shared across authcli modules.

**Configuration models** -- serialised as JSON in the user's config and
data directories:
    :class:`GlobalConfig` and :class:`Settings`.

**Login models** -- produced by :mod:`authcli.login` and consumed by the
``auth`` commands:
    :class:`LoginState`, :class:`LoginOutcome`, :class:`CallbackResult`
    and :class:`LoginResult`.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HOST = "https://api.chiseledge.com"


# --- Configuration ---


class GlobalConfig(BaseModel):
    """Global configuration stored at ``<config_dir>/config.json``.

    Loaded by :func:`~authcli.config.load_global_config` and layered with
    environment variables and CLI flags by
    :func:`~authcli.config.resolve_config`. Every field has a default so
    that a missing file behaves like an empty one.
    """

    model_config = ConfigDict(extra="ignore")

    host: str = Field(
        default=DEFAULT_HOST,
        description="Base URL of the remote login page",
    )
    api_url: Optional[str] = Field(
        default=None,
        description="Base URL for token validation and release lookups (defaults to host)",
    )
    callback_timeout: float = Field(
        default=300,
        ge=0,
        description="Seconds to wait for the browser callback (0 waits forever)",
    )
    request_timeout: float = Field(
        default=10, gt=0, description="HTTP request timeout in seconds"
    )
    check_version: bool = Field(
        default=True, description="Check for a newer release while logging in"
    )

    @property
    def effective_api_url(self) -> str:
        """The API base URL, falling back to :attr:`host`."""
        return self.api_url or self.host


class Settings(BaseModel):
    """Per-user state persisted by :class:`~authcli.settings.SettingsStore`.

    An empty :attr:`token` means nobody is logged in.
    """

    model_config = ConfigDict(extra="allow")

    token: str = ""
    username: str = ""


# --- Login ---


class LoginState(str, enum.Enum):
    """States of :class:`~authcli.login.flow.LoginFlow`."""

    CHECKING_EXISTING_CREDENTIAL = "checking_existing_credential"
    AWAITING_CALLBACK = "awaiting_callback"
    PERSISTING = "persisting"
    REPORTING_OUTCOME = "reporting_outcome"
    DONE = "done"
    FAILED = "failed"


class LoginOutcome(str, enum.Enum):
    """How a successful login finished."""

    ALREADY_VALID = "already_valid"
    LOGGED_IN = "logged_in"


class CallbackResult:
    """Values pulled out of one request to the local callback server.

    Args:
        jwt: The ``jwt`` query parameter, or ``""`` when absent.
        username: The ``username`` query parameter, or ``""`` when absent.
    """

    def __init__(self, jwt: str = "", username: str = "") -> None:
        self.jwt = jwt
        self.username = username

    def __repr__(self) -> str:
        return f"CallbackResult(username={self.username!r}, jwt=<{len(self.jwt)} chars>)"


class LoginResult:
    """Terminal value of a successful :class:`~authcli.login.flow.LoginFlow` run.

    Failures are not represented here; they are raised as
    :class:`~authcli.exceptions.AuthcliError` subclasses.

    Args:
        outcome: Whether a stored token was reused or a new one obtained.
        token: The token now stored in settings.
        username: Username reported by the login page, if any.
        latest_version: Result of the version probe. ``None`` when the
            flow short-circuited or the probe was disabled.
        update_available: ``True`` when *latest_version* differs from the
            running version.
    """

    def __init__(
        self,
        outcome: LoginOutcome,
        token: str,
        username: str = "",
        latest_version: Optional[str] = None,
        update_available: bool = False,
    ) -> None:
        self.outcome = outcome
        self.token = token
        self.username = username
        self.latest_version = latest_version
        self.update_available = update_available
