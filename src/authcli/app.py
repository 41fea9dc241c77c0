"""Typer application factory and CLI entry point for authcli.

:func:`build_app` constructs the root Typer application and registers the
built-in ``auth`` command group. Nothing is registered at import time, so
tests can build as many independent apps as they need.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, builds the app and invokes
it. Unhandled exceptions are written to a crash log under the data
directory.

See Also:
    :mod:`authcli.config`: Configuration resolution.
    :mod:`authcli.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from authcli import __version__
from authcli.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"authcli {__version__}")
        raise typer.Exit()


_log_handler: Optional[logging.Handler] = None


def _configure_logging(verbose: bool) -> None:
    """Route the ``authcli`` loggers to stderr; DEBUG with ``--verbose``, WARNING otherwise.

    The handler is rebuilt on every invocation so it writes to the current
    ``sys.stderr``.
    """
    global _log_handler
    logger = logging.getLogger("authcli")
    if _log_handler is not None:
        logger.removeHandler(_log_handler)
    _log_handler = logging.StreamHandler(sys.stderr)
    _log_handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(_log_handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Login host URL (overrides AUTHCLI_HOST and config)."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~authcli.output.OutputManager` and the
    ``authcli`` loggers from CLI flags, and stores shared options in the
    Typer context so that sub-commands can read them via ``ctx.obj``.
    """
    from authcli.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["host"] = host
    ctx.obj["verbose"] = verbose


def build_app() -> typer.Typer:
    """Build the root Typer application with every built-in command group."""
    from authcli.commands.auth import auth_app

    app = typer.Typer(
        name="authcli",
        help="Log in to the platform through your browser.",
        no_args_is_help=True,
        add_completion=False,
        rich_markup_mode="rich",
    )
    app.callback()(main_callback)
    app.add_typer(auth_app, name="auth", help="Authenticate with the platform.")
    return app


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly.

    ``sys.exit`` raises ``SystemExit`` in the main thread, so ``finally``
    blocks (the callback server teardown in particular) still run.
    """

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from authcli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``authcli`` console script.

    Unhandled :class:`~authcli.exceptions.AuthcliError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app = build_app()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from authcli.exceptions import AuthcliError
        from authcli.output import error

        if isinstance(exc, AuthcliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
