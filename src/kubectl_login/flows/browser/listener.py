"""Single-use local HTTP endpoint that receives the authorization callback.

The listener serves ``GET /callback`` on ``127.0.0.1:<port>`` from a daemon
thread. The first meaningful callback fills a one-shot result slot and shuts
the server down; :meth:`RedirectListener.wait` blocks on that slot with a
timeout::

    with RedirectListener(8000, pkce.state) as listener:
        webbrowser.open(auth_url)
        code = listener.wait(timeout=300)

Callback outcomes:

===========================================  ======  =======================
Query                                        Status  Result of ``wait()``
===========================================  ======  =======================
``error`` present                            400     :class:`ProviderError`
``state`` missing or different               400     :class:`StateMismatchError`
``code`` missing                             400     :class:`MissingCodeError`
``code`` and matching ``state``              200     the code
===========================================  ======  =======================

Requests for any other path get a 404 and are ignored.
"""

from __future__ import annotations

import html
import logging
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from kubectl_login.exceptions import (
    AuthError,
    AuthTimeoutError,
    ListenerBindError,
    MissingCodeError,
    ProviderError,
    StateMismatchError,
)

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"

_PAGE = """<!DOCTYPE html>
<html>
<head><title>kubectl-login</title></head>
<body style="font-family: sans-serif; text-align: center; padding: 50px;">
  <h1>{title}</h1>
  <p>{detail}</p>
</body>
</html>
"""


class _CallbackServer(HTTPServer):
    listener: "RedirectListener"


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self._send_page(404, "Not found", "")
            return

        params = parse_qs(parsed.query)
        status, title, detail = self.server.listener._handle_callback(
            {name: values[0] for name, values in params.items()}
        )
        self._send_page(status, title, detail)

    def _send_page(self, status: int, title: str, detail: str) -> None:
        body = _PAGE.format(title=html.escape(title), detail=html.escape(detail))
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body.encode("utf-8"))

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback listener: " + format, *args)


class RedirectListener:
    """Capture exactly one authorization-code callback.

    Args:
        port: Local port to bind. Must match the registered redirect URI.
        expected_state: The ``state`` sent in the authorization request.
        host: Interface to bind.
    """

    def __init__(self, port: int, expected_state: str, host: str = "127.0.0.1") -> None:
        self._port = port
        self._host = host
        self._expected_state = expected_state
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None
        self._done = threading.Event()
        self._slot_lock = threading.Lock()
        self._code: Optional[str] = None
        self._error: Optional[AuthError] = None

    def __enter__(self) -> "RedirectListener":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def port(self) -> int:
        """The bound port (useful when constructed with port 0)."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._port

    def start(self) -> None:
        """Bind the port and start serving in a daemon thread.

        Raises:
            ListenerBindError: If the port cannot be bound.
        """
        try:
            server = _CallbackServer((self._host, self._port), _CallbackHandler)
        except OSError as exc:
            raise ListenerBindError(
                f"Cannot listen on {self._host}:{self._port} for the login callback: {exc}"
            ) from exc
        server.listener = self
        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="kubectl-login-callback",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Callback listener started on %s:%d", self._host, self.port)

    def wait(self, timeout: float) -> str:
        """Block until the callback arrives or *timeout* seconds pass.

        The listener is closed before returning or raising.

        Returns:
            The authorization code.

        Raises:
            AuthTimeoutError: If no callback arrived in time.
            ProviderError: If the provider redirected with an error.
            StateMismatchError: If ``state`` was missing or wrong.
            MissingCodeError: If no code was present.
        """
        try:
            if not self._done.wait(timeout):
                raise AuthTimeoutError(
                    f"Timed out after {int(timeout)}s waiting for the browser login"
                )
        finally:
            self.close()

        if self._error is not None:
            raise self._error
        if self._code is None:
            raise MissingCodeError("No authorization code in the login callback")
        return self._code

    def close(self) -> None:
        """Stop serving and release the port. Safe to call more than once."""
        server, self._server = self._server, None
        if server is None:
            return
        if self._thread is not None and self._thread is not threading.current_thread():
            server.shutdown()
            self._thread.join(timeout=5)
        server.server_close()
        logger.debug("Callback listener closed")

    # ------------------------------------------------------------------ #
    # Called from the server thread
    # ------------------------------------------------------------------ #

    def _handle_callback(self, params: dict[str, str]) -> tuple[int, str, str]:
        code: Optional[str] = None
        error: Optional[AuthError] = None

        if params.get("error"):
            error = ProviderError(params["error"], params.get("error_description") or None)
            page = (400, "Login failed", str(error))
        elif params.get("state") != self._expected_state:
            error = StateMismatchError(
                "State parameter mismatch in the login callback; "
                "the request may have been forged"
            )
            page = (400, "Login failed", "Invalid state parameter.")
        elif not params.get("code"):
            error = MissingCodeError("No authorization code in the login callback")
            page = (400, "Login failed", "No authorization code received.")
        else:
            code = params["code"]
            page = (
                200,
                "Login successful",
                "You can close this window and return to the terminal.",
            )

        with self._slot_lock:
            if self._done.is_set():
                return 400, "Login already completed", "This callback was ignored."
            self._code = code
            self._error = error
            self._done.set()

        # shutdown() blocks until serve_forever returns, so it cannot run on
        # the serving thread itself.
        threading.Thread(target=self._stop_serving, daemon=True).start()
        return page

    def _stop_serving(self) -> None:
        server = self._server
        if server is not None:
            server.shutdown()
