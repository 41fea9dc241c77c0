"""authcli -- log a command-line tool in through the system browser.

The login handshake opens the user's browser on the remote login page,
receives the resulting token on a short-lived local HTTP listener and
stores it in the local settings file. While waiting for the browser, a
background probe checks whether a newer release of the tool is
available.

Typical workflow::

    authcli auth login    # browser round trip, token stored locally
    authcli auth token    # print the stored token (after validating it)
    authcli auth logout   # forget the stored token

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models for configuration, settings and login results.
    config: XDG-aware configuration loading and precedence resolution.
    settings: Persistent token storage.
    client: httpx wrapper for the remote API.
    login: Callback server, browser launcher, version probe, login flow.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.4.1"
