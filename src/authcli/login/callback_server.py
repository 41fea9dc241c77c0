"""Ephemeral local HTTP server that receives the token from the browser redirect.

The remote login page finishes by redirecting the browser to
``http://localhost:<port>/?jwt=<token>&username=<name>``. This module binds
an OS-assigned port on the loopback interface, serves that redirect from a
background thread and hands the extracted values to the waiting caller
through a single-slot queue.

Only the first request's values are delivered. Later hits (a browser
refresh, a duplicate redirect) still get the confirmation page, but their
values are dropped, so the serving thread can never block on a full queue.

See Also:
    :class:`~authcli.login.flow.LoginFlow` -- owns the returned
    :class:`ServerHandle` and stops it exactly once.
"""

from __future__ import annotations

import logging
import queue
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import jinja2

from authcli.exceptions import PortAllocationError, TemplateError
from authcli.models import CallbackResult

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
LOGIN_TEMPLATE = "login.html.j2"

HANDLER_TIMEOUT = 10.0

_FALLBACK_BODY = (
    "<html><body><h2>Success! You can close this window "
    "and return to the terminal.</h2></body></html>"
)


def load_login_template(
    template_dir: Path = TEMPLATE_DIR,
    name: str = LOGIN_TEMPLATE,
) -> jinja2.Template:
    """Load and compile the confirmation page shown after the redirect.

    Autoescape is always on because ``username`` comes straight from the
    query string.

    Raises:
        TemplateError: If the template is missing or does not compile.
    """
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(template_dir)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    try:
        return env.get_template(name)
    except jinja2.TemplateError as exc:
        raise TemplateError(
            f"could not parse login callback template {name}: {exc}"
        ) from exc


class _CallbackHTTPServer(ThreadingHTTPServer):
    """:class:`ThreadingHTTPServer` carrying the result queue and page template.

    Each connection gets its own daemon thread, so a socket that connects
    and never sends (a browser preconnect) cannot hold up the redirect or
    :meth:`ServerHandle.stop`.
    """

    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        results: queue.Queue[CallbackResult],
        template: jinja2.Template,
    ) -> None:
        self.results = results
        self.template = template
        self.hits = 0
        self._hits_lock = threading.Lock()
        super().__init__(address, _CallbackHandler)

    def deliver(self, result: CallbackResult) -> bool:
        """Queue *result* unless a value is already waiting or was consumed."""
        with self._hits_lock:
            self.hits += 1
            hit = self.hits
        if hit > 1:
            logger.debug("Ignoring callback #%d, a token was already delivered", hit)
            return False
        try:
            self.results.put_nowait(result)
        except queue.Full:
            return False
        return True


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer

    # Idle sockets are dropped after this many seconds.
    timeout = HANDLER_TIMEOUT

    def do_GET(self) -> None:
        self._handle_callback()

    def do_POST(self) -> None:
        self._handle_callback()

    def _handle_callback(self) -> None:
        params = parse_qs(urlparse(self.path).query, keep_blank_values=True)
        jwt = params.get("jwt", [""])[0]
        username = params.get("username", [""])[0]

        # Deliver before rendering.
        self.server.deliver(CallbackResult(jwt=jwt, username=username))

        try:
            body = self.server.template.render(username=username)
        except jinja2.TemplateError as exc:
            logger.warning("Could not render login confirmation page: %s", exc)
            body = _FALLBACK_BODY

        payload = body.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format, *args)


class ServerHandle:
    """Owns a running callback server and its serving thread.

    Returned by :func:`start_callback_server`. The owner must call
    :meth:`stop` (or use the handle as a context manager) on every exit
    path; calling :meth:`stop` more than once is a no-op.
    """

    def __init__(
        self,
        server: _CallbackHTTPServer,
        thread: threading.Thread,
    ) -> None:
        self._server = server
        self._thread = thread
        self._stopped = False
        self._lock = threading.Lock()

    @property
    def port(self) -> int:
        """The OS-assigned port the server listens on."""
        return self._server.server_address[1]

    @property
    def stopped(self) -> bool:
        """Whether :meth:`stop` has run."""
        return self._stopped

    @property
    def results(self) -> queue.Queue[CallbackResult]:
        """Single-slot queue receiving the first callback's values."""
        return self._server.results

    def wait(self, timeout: Optional[float] = None) -> CallbackResult:
        """Block until the first callback arrives.

        Args:
            timeout: Seconds to wait; ``None`` waits forever.

        Raises:
            queue.Empty: If *timeout* expires first.
        """
        return self._server.results.get(timeout=timeout)

    def stop(self) -> None:
        """Stop serving, wait for the serving thread and release the port."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        logger.debug("Stopping callback server on port %d", self.port)
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)

    def __enter__(self) -> ServerHandle:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def start_callback_server(
    host: str = "127.0.0.1",
    template: Optional[jinja2.Template] = None,
) -> tuple[int, ServerHandle]:
    """Bind an OS-assigned port and start serving callbacks in the background.

    Returns as soon as the socket is bound and the serving thread is
    running; it does not wait for a request.

    Args:
        host: Interface to bind. Defaults to IPv4 loopback.
        template: Pre-compiled confirmation page. Loaded from the package
            templates when omitted.

    Returns:
        A ``(port, handle)`` tuple.

    Raises:
        TemplateError: If the confirmation page cannot be prepared. Raised
            before any socket is bound.
        PortAllocationError: If no port can be bound.
    """
    if template is None:
        template = load_login_template()

    results: queue.Queue[CallbackResult] = queue.Queue(maxsize=1)
    try:
        server = _CallbackHTTPServer((host, 0), results, template)
    except OSError as exc:
        raise PortAllocationError(
            f"could not allocate port for http server: {exc}"
        ) from exc

    thread = threading.Thread(
        target=server.serve_forever,
        kwargs={"poll_interval": 0.1},
        name="authcli-callback-server",
        daemon=True,
    )
    thread.start()

    handle = ServerHandle(server, thread)
    logger.debug("Callback server listening on %s:%d", host, handle.port)
    return handle.port, handle
