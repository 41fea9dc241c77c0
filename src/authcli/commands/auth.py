"""Auth commands -- log in, log out, print the stored token.

Provides the ``authcli auth`` sub-command group::

    authcli auth login     # browser round trip, token stored locally
    authcli auth logout    # forget the stored token
    authcli auth token     # print the stored token if it still validates

Each command resolves the effective configuration, builds a
:class:`~authcli.settings.SettingsStore` and delegates to
:mod:`authcli.login`. :class:`~authcli.exceptions.AuthcliError` is
reported on stderr and turned into the error's exit code.
"""

from __future__ import annotations

from typing import Optional

import typer

from authcli.output import error, print_data, suggest


auth_app = typer.Typer(no_args_is_help=True)


def _cli_host(ctx: typer.Context) -> Optional[str]:
    """Return the ``--host`` given on the root command, if any."""
    obj = ctx.find_root().obj
    return obj.get("host") if isinstance(obj, dict) else None


def _fail(exc: Exception, exit_code: int) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exit_code)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=0,
        help="Seconds to wait for the browser (0 waits forever). Defaults to config.",
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the login URL instead of opening a browser."
    ),
) -> None:
    """Log in through the browser.

    Reuses the stored token when the API still accepts it. Otherwise opens
    the login page, waits for the redirect carrying the new token and
    stores it.

    Example::

        authcli auth login
        authcli auth login --no-browser --timeout 120
    """
    from authcli.client import create_client
    from authcli.config import resolve_config
    from authcli.exceptions import AuthcliError, LoginCancelledError
    from authcli.login import LoginFlow
    from authcli.settings import SettingsStore

    try:
        config = resolve_config(cli_host=_cli_host(ctx))
        flow = LoginFlow(
            store=SettingsStore(),
            client_factory=lambda token: create_client(config, token),
            host=config.host,
            callback_timeout=config.callback_timeout if timeout is None else timeout,
            check_version=config.check_version,
            version_timeout=config.request_timeout,
            launch_browser=not no_browser,
        )
        flow.run()
    except LoginCancelledError as exc:
        suggest("Try again: authcli auth login")
        raise _fail(exc, exc.exit_code) from None
    except AuthcliError as exc:
        raise _fail(exc, exc.exit_code) from None


@auth_app.command("logout")
def auth_logout() -> None:
    """Log out the currently logged in user.

    Clears the stored token. Does nothing (and says so) when nobody is
    logged in.
    """
    from authcli.exceptions import AuthcliError
    from authcli.login import logout
    from authcli.settings import SettingsStore

    try:
        logout(SettingsStore())
    except AuthcliError as exc:
        raise _fail(exc, exc.exit_code) from None


@auth_app.command("token")
def auth_token(ctx: typer.Context) -> None:
    """Show the token used for authorization.

    The token is printed on stdout so it can be captured by scripts::

        export API_TOKEN="$(authcli auth token)"
    """
    from authcli.client import create_client
    from authcli.config import resolve_config
    from authcli.exceptions import AuthcliError
    from authcli.login import show_token
    from authcli.settings import SettingsStore

    try:
        config = resolve_config(cli_host=_cli_host(ctx))
        token = show_token(
            SettingsStore(),
            lambda token: create_client(config, token),
        )
    except AuthcliError as exc:
        raise _fail(exc, exc.exit_code) from None
    print_data(token)
