"""Single-use local HTTP listener that captures the OAuth authorization code.

The browser is redirected to ``http://localhost:<port>/?code=...&state=...``
after consent.  A FastAPI app served by uvicorn on a pre-bound socket answers
exactly one request, resolves the capture future, and shuts itself down.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
import os
import socket
from html import escape
from urllib.parse import unquote

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse

from tasknest.config import CALLBACK_HOST, CALLBACK_PORT, CALLBACK_TIMEOUT

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5  # seconds to wait for uvicorn to stop

# On Windows SO_REUSEADDR lets a second socket steal a port that is in use
REUSE_ADDRESS = os.name != "nt"


class BindError(Exception):
    """Raised when the callback port cannot be bound."""


class CallbackTimeoutError(Exception):
    """Raised when no authorization code arrives in time."""


class CallbackError(Exception):
    """Raised when the callback request carried no usable code."""


class ListenerUsedError(Exception):
    """Raised when a listener instance is awaited twice."""


# ── Query parsing ───────────────────────────────────────────────────


def query_param(query: str, name: str) -> str | None:
    """Return the first value of ``name`` in a raw query string.

    Pairs are split on ``&`` then ``=``; the first matching key wins even if
    later pairs repeat it.  Empty values count as absent.
    """
    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        if key == name:
            return unquote(value) or None
    return None


def extract_code(query: str) -> str | None:
    return query_param(query, "code")


# ── HTML pages ──────────────────────────────────────────────────────

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>TaskNest — {title}</title></head>
<body style="font-family: sans-serif; text-align: center; margin-top: 4em;">
<h1>{title}</h1>
<p>{message}</p>
</body>
</html>
"""


def _page(title: str, message: str) -> str:
    return _PAGE.format(title=escape(title), message=escape(message))


SUCCESS_PAGE = _page(
    "Login successful",
    "TaskNest received the authorization. You can close this window.",
)


def failure_page(reason: str) -> str:
    return _page("Login failed", f"{reason} Return to TaskNest and try again.")


# ── Listener ────────────────────────────────────────────────────────


class CallbackListener:
    """Captures one authorization code on a fixed local port.

    Each instance serves a single attempt: bind, await, done.  A new login
    attempt must create a new listener.
    """

    def __init__(
        self,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        expected_state: str | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.expected_state = expected_state
        self.app = create_callback_app(self)
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._capture: asyncio.Future[str] | None = None
        self._handled = False
        self._used = False

    # ── public ──────────────────────────────────────────────────────

    def bind(self) -> socket.socket:
        """Bind the listening socket now, so port conflicts surface early."""
        if self._socket is not None:
            return self._socket
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        if REUSE_ADDRESS:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen(16)
        except OSError as e:
            sock.close()
            raise BindError(
                f"Cannot listen on {self.host}:{self.port} ({e.strerror or e}). "
                "Is another login still running?"
            ) from e
        self.port = sock.getsockname()[1]
        self._socket = sock
        logger.debug("Callback listener bound to %s:%d", self.host, self.port)
        return sock

    def close(self) -> None:
        """Release the socket if it is still bound.  Safe to call twice."""
        if self._socket is not None:
            self._socket.close()
            self._socket = None
            logger.debug("Callback listener closed")

    async def await_authorization_code(self, timeout: float = CALLBACK_TIMEOUT) -> str:
        """Serve until one callback arrives, then return its code."""
        if self._used:
            raise ListenerUsedError("This callback listener was already used.")
        self._used = True

        sock = self.bind()
        capture = self._capture_slot()
        config = uvicorn.Config(
            self.app,
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        worker = asyncio.create_task(self._server.serve(sockets=[sock]))

        try:
            done, _ = await asyncio.wait(
                {capture, worker},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if capture in done:
                return capture.result()
            if worker in done:
                raise CallbackError("Callback listener stopped before a code arrived.")
            raise CallbackTimeoutError(
                f"Timed out waiting for authorization ({timeout:g}s). Please try again."
            )
        finally:
            await self._shutdown(worker)
            if not capture.done():
                capture.cancel()

    @property
    def captured_code(self) -> str | None:
        """The captured code, or None if no successful callback happened."""
        capture = self._capture
        if capture is None or not capture.done() or capture.cancelled():
            return None
        if capture.exception() is not None:
            return None
        return capture.result()

    # ── request handling ────────────────────────────────────────────

    def handle_query(self, query: str) -> tuple[int, str]:
        """Process one callback query string.  Returns (status, html)."""
        capture = self._capture_slot()
        if self._handled or capture.done():
            logger.warning("Ignoring extra callback request")
            return 409, failure_page("This login link was already used.")
        self._handled = True
        self._request_shutdown()

        code = extract_code(query)
        if code is None:
            error = query_param(query, "error")
            if error:
                logger.warning("Authorization was denied: %s", error)
                capture.set_exception(CallbackError(f"Authorization failed: {error}"))
                return 400, failure_page(f"Google reported: {error}.")
            capture.set_exception(CallbackError("Callback did not include an authorization code."))
            return 400, failure_page("No authorization code was received.")

        if self.expected_state is not None:
            state = query_param(query, "state") or ""
            if not hmac.compare_digest(state.encode(), self.expected_state.encode()):
                logger.warning("Callback state mismatch; discarding code")
                capture.set_exception(
                    CallbackError("Callback state did not match this login attempt.")
                )
                return 400, failure_page("The login response did not match this attempt.")

        capture.set_result(code)
        logger.info("Authorization code received")
        return 200, SUCCESS_PAGE

    # ── private ─────────────────────────────────────────────────────

    def _capture_slot(self) -> asyncio.Future[str]:
        if self._capture is None:
            self._capture = asyncio.get_running_loop().create_future()
        return self._capture

    def _request_shutdown(self) -> None:
        if self._server is not None:
            self._server.should_exit = True

    async def _shutdown(self, worker: asyncio.Task) -> None:
        self._request_shutdown()
        try:
            await asyncio.wait_for(worker, SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Callback listener did not stop within %ss", SHUTDOWN_TIMEOUT)
        finally:
            self.close()


def create_callback_app(listener: CallbackListener) -> FastAPI:
    """Create the FastAPI app that answers the OAuth redirect."""

    app = FastAPI(
        title="TaskNest OAuth callback",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Browsers ask for this after rendering the page; it is not a callback.
    @app.get("/favicon.ico")
    async def favicon() -> Response:
        return Response(status_code=404)

    @app.get("/{path:path}")
    async def callback(request: Request) -> HTMLResponse:
        status, html = listener.handle_query(request.url.query)
        return HTMLResponse(html, status_code=status)

    return app
