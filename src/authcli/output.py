"""Terminal output for authcli.

authcli writes exactly one thing to stdout: the token printed by
``authcli auth token``, so that ``$(authcli auth token)`` captures nothing
else. Everything the user reads while logging in goes to stderr:

* progress ("Waiting for authentication...") and outcomes ("Success!"),
* the login URL when no browser could be opened,
* the upgrade reminder from the version probe,
* errors and the suggested next command.

How those messages look depends on where stdout goes. An interactive
terminal gets Rich markup (green check mark, highlighted values); a pipe,
``--no-color``, ``NO_COLOR`` or ``TERM=dumb`` get plain lines that are
safe to copy and grep.

:func:`~authcli.app.main_callback` installs one :class:`OutputManager` per
invocation with :func:`set_output`; the rest of the package calls the
module-level helpers (:func:`info`, :func:`notice`, :func:`success`, ...).
"""

from __future__ import annotations

import os
import sys
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.markup import escape


class OutputFormat(str, Enum):
    """How stderr messages are rendered.

    ``AUTO`` picks ``RICH`` when stdout is a terminal and colour is
    allowed, otherwise ``PLAIN``.
    """

    AUTO = "auto"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes the login flow's messages to stdout or stderr.

    Args:
        format: Rendering of stderr messages; ``AUTO`` decides from the
            terminal.
        no_color: Plain rendering regardless of the terminal.
        quiet: Drop progress, success and suggestion lines. The manual
            login URL, warnings and errors are still shown.
        verbose: Show :meth:`debug` lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich else OutputFormat.PLAIN
        self._format = format

        # soft_wrap keeps long login URLs on one line.
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
            highlight=False,
            soft_wrap=True,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved rendering, never ``AUTO``."""
        return self._format

    @property
    def _rich(self) -> bool:
        return self._format == OutputFormat.RICH

    def _emit(self, plain: str, markup: Optional[str] = None) -> None:
        if self._rich:
            self._stderr.print(plain if markup is None else markup)
        else:
            print(plain, file=sys.stderr, flush=True)

    def emph(self, text: str) -> str:
        """Highlight a value (username, version, URL) inside a message."""
        if not self._rich:
            return text
        return f"[bold cyan]{escape(text)}[/bold cyan]"

    def print_data(self, text: str) -> None:
        """Write *text* and a newline to stdout. Never suppressed."""
        print(text, file=sys.stdout, flush=True)

    def info(self, message: str) -> None:
        """Progress line on stderr. Hidden by ``--quiet``."""
        if not self._quiet:
            self._emit(message)

    def notice(self, message: str) -> None:
        """Line the user has to act on, such as the manual login URL. Always shown."""
        self._emit(message)

    def success(self, message: str) -> None:
        """Outcome line on stderr with a check mark in rich mode. Hidden by ``--quiet``."""
        if not self._quiet:
            self._emit(message, f"[green]✔  {message}[/green]")

    def warning(self, message: str) -> None:
        """Always shown."""
        self._emit(
            f"Warning: {message}",
            f"[yellow]Warning:[/yellow] {escape(message)}",
        )

    def error(self, message: str) -> None:
        """Always shown. *message* is escaped, it often quotes user input."""
        self._emit(
            f"Error: {message}",
            f"[bold red]Error:[/bold red] {escape(message)}",
        )

    def suggest(self, message: str) -> None:
        """Next command to try, e.g. after a timed-out login. Hidden by ``--quiet``."""
        if not self._quiet:
            self._emit(f"→ {message}", f"[dim]→ {escape(message)}[/dim]")

    def debug(self, message: str) -> None:
        """Only shown with ``--verbose``."""
        if self._verbose:
            self._emit(f"[debug] {message}", f"[dim]\\[debug] {escape(message)}[/dim]")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# --- Global instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager. Tests call this between runs."""
    global _output
    _output = None


# --- Module-level helpers ---


def emph(text: str) -> str:
    return get_output().emph(text)


def print_data(text: str) -> None:
    get_output().print_data(text)


def info(message: str) -> None:
    get_output().info(message)


def notice(message: str) -> None:
    get_output().notice(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
