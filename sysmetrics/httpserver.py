"""HTTP endpoint exposing a collector registry for scraping."""

from __future__ import annotations

import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

from sysmetrics.prom import CollectorRegistry

_log = logging.getLogger(__name__)

_INVALID_METHOD = b"Invalid HTTP Method\n"
_OK = b"OK\n"
_BAD_REQUEST = b"Bad Request\n"


def handle_request(method: str, url: str, registry: CollectorRegistry) -> tuple[HTTPStatus, bytes]:
    """Return the status and body answering *method* on *url*."""
    if method != "GET":
        return HTTPStatus.BAD_REQUEST, _INVALID_METHOD
    if url == "/":
        return HTTPStatus.OK, _OK
    if url == "/metrics":
        return HTTPStatus.OK, registry.bridge().encode("utf-8")
    return HTTPStatus.BAD_REQUEST, _BAD_REQUEST


def _make_handler(registry: CollectorRegistry) -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        def _respond(self) -> None:
            status, body = handle_request(self.command, self.path, registry)
            self.send_response(status)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)

        do_GET = _respond
        do_POST = _respond
        do_PUT = _respond
        do_DELETE = _respond
        do_PATCH = _respond
        do_HEAD = _respond
        do_OPTIONS = _respond

        def log_message(self, format: str, *args) -> None:  # noqa: A002
            """Send request logs to the module logger instead of stderr."""
            _log.debug("%s - %s", self.address_string(), format % args)

    return _Handler


class MetricsServer:
    """Serves a registry over HTTP from a background thread."""

    def __init__(self, registry: CollectorRegistry, host: str = "0.0.0.0", port: int = 8000) -> None:
        self.registry = registry
        self.host = host
        self._requested_port = port
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        """The bound port once started, otherwise the requested one."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._requested_port

    @property
    def running(self) -> bool:
        return self._server is not None

    def start(self) -> None:
        """Bind the socket and begin serving in a daemon thread."""
        if self._server is not None:
            raise RuntimeError("server already running")
        server = ThreadingHTTPServer((self.host, self._requested_port), _make_handler(self.registry))
        server.daemon_threads = True
        self._server = server
        self._thread = threading.Thread(target=server.serve_forever, name="metrics-http", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop serving and release the socket."""
        server, thread = self._server, self._thread
        if server is None:
            return
        server.shutdown()
        server.server_close()
        if thread is not None:
            thread.join()
        self._server = None
        self._thread = None

    def __enter__(self) -> "MetricsServer":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()