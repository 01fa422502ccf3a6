# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0
"""WSGI server that shares a fixed selection of files (threaded backend).

This module exposes a minimal WebOb-based WSGI application bound to one
immutable ``Snapshot`` of file handles, plus a ``FileServer`` service that
hosts it on a threaded ``wsgiref`` server. Two routes exist: ``/`` renders
a download index and ``/file?uri=<key>`` streams one file.
"""

import enum
import os
import threading
from socketserver import ThreadingMixIn
from typing import Callable
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from oslo_config import cfg
from oslo_log import log as logging
from oslo_service import service
from webob import Request, Response
from webob.static import FileIter

from .handles import Snapshot
from .resolver import FileResolver, LocalFileResolver, ResolutionStatus
from .utils import (
    CHUNK_READ_SIZE,
    DEFAULT_MIME_TYPE,
    FILE_ROUTE,
    BadRequestError,
    ServerStartError,
    content_disposition,
    parse_canonical_key,
    render_index,
)

LOG = logging.getLogger(__name__)


fileserver_opts = [
    cfg.StrOpt(
        "host",
        default=os.environ.get("LANSHARE_HOST", "0.0.0.0"),
        help="Listen address for the file server",
    ),
    cfg.IntOpt(
        "port",
        default=int(os.environ.get("LANSHARE_PORT", "8080")),
        min=0,
        help="TCP listen port for the file server",
    ),
    cfg.IntOpt(
        "chunk_size",
        default=CHUNK_READ_SIZE,
        min=1,
        help="Block size in bytes used when streaming file content",
    ),
]

CONF = cfg.CONF
CONF.register_opts(fileserver_opts, group="fileserver")


class ChunkedFileIter(FileIter):
    """File iterator reading ``block_size`` bytes at a time.

    ``close()`` closes the underlying stream even if iteration never starts.
    """

    def __init__(self, file, block_size: int = CHUNK_READ_SIZE):
        super().__init__(file)
        self.block_size = block_size

    def __iter__(self):
        return self.app_iter_range(block_size=self.block_size)


def _error(status: int, detail: str) -> Response:
    """Return a short text/html error response."""
    return Response(text=detail, status=status, content_type="text/html")


def index_ep(snapshot: Snapshot) -> Response:
    """Render the download index for every shared file."""
    return Response(text=render_index(snapshot), content_type="text/html")


def file_ep(
    request: Request, snapshot: Snapshot, resolver: FileResolver, chunk_size: int
) -> Response:
    """Stream the shared file named by the ``uri`` query parameter."""
    try:
        key = parse_canonical_key(request.GET.get("uri"))
    except (BadRequestError, UnicodeDecodeError) as exc:
        LOG.debug("Rejected file request: %s", exc)
        return _error(400, "Bad Request")

    handle = snapshot.lookup(key)
    if handle is None:
        return _error(404, "File not found")

    resolution = resolver.resolve(handle)
    if not resolution.ok:
        LOG.warning("Unable to serve %s: %s", handle.display_name, resolution.detail)
    if resolution.status is ResolutionStatus.OPEN_FAILED:
        return _error(500, "Error serving file")
    if resolution.status is ResolutionStatus.UNKNOWN_LENGTH:
        return _error(500, "Unable to determine file size")

    try:
        file_iter = ChunkedFileIter(resolution.stream, block_size=chunk_size)
        response = Response(status=200, app_iter=file_iter)
        response.headers["Content-Type"] = resolution.mime_type or DEFAULT_MIME_TYPE
        response.headers["Content-Disposition"] = content_disposition(handle.display_name)
        response.content_length = resolution.length
    except Exception:
        resolution.stream.close()
        raise
    LOG.info("Serving %s (%d bytes)", handle.display_name, resolution.length)
    return response


def _route(
    request: Request, snapshot: Snapshot, resolver: FileResolver, chunk_size: int
) -> Response:
    """Dispatch incoming requests to the appropriate endpoint handler."""
    path = request.path_info or "/"
    if path == "/":
        return index_ep(snapshot)
    if path == FILE_ROUTE:
        try:
            return file_ep(request, snapshot, resolver, chunk_size)
        except Exception as exc:
            LOG.exception("file request failed: %s", exc)
            return _error(500, "Error serving file")
    return _error(404, "404 Not Found")


def make_application(
    snapshot: Snapshot, resolver: FileResolver | None = None, chunk_size: int | None = None
):
    """Build a WSGI application callable bound to ``snapshot``."""
    resolver = resolver or LocalFileResolver()
    chunk_size = chunk_size or CONF.fileserver.chunk_size

    def application(environ, start_response):
        """WSGI application callable."""
        request = Request(environ)
        response = _route(request, snapshot, resolver, chunk_size)
        return response(environ, start_response)

    return application


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """Threading-based WSGI server."""

    daemon_threads = True


class LoggingRequestHandler(WSGIRequestHandler):
    """Request handler sending access lines to the debug log."""

    def log_message(self, format, *args):
        LOG.debug("%s - %s", self.address_string(), format % args)


class ServerState(enum.Enum):
    """Lifecycle states of the file server."""

    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"


class FileServer(service.ServiceBase):
    """Threaded file sharing service, one listener per started snapshot."""

    def __init__(
        self,
        resolver: FileResolver | None = None,
        host: str | None = None,
        port: int | None = None,
    ):
        self._resolver = resolver or LocalFileResolver()
        self._host = CONF.fileserver.host if host is None else host
        self._port = CONF.fileserver.port if port is None else port
        self._lock = threading.RLock()
        self._listeners: list[Callable[[ServerState], None]] = []
        self._stopped = threading.Event()
        self._stopped.set()
        self._state = ServerState.STOPPED
        self._snapshot = None
        self._httpd = None
        self._thread = None

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is ServerState.LISTENING

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        """Return the bound port, or the configured one when stopped."""
        httpd = self._httpd
        if httpd is not None:
            return httpd.server_port
        return self._port

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    def add_listener(self, callback: Callable[[ServerState], None]) -> None:
        """Register a callable notified on every state transition."""
        self._listeners.append(callback)

    def _set_state(self, state: ServerState) -> None:
        self._state = state
        for callback in list(self._listeners):
            callback(state)

    def start(self, snapshot: Snapshot | None = None):
        """Start serving ``snapshot``, replacing any running listener.

        Raises ServerStartError when the listening socket cannot be bound.
        """
        snapshot = snapshot if snapshot is not None else Snapshot()
        with self._lock:
            self.stop()
            self._set_state(ServerState.STARTING)
            app = make_application(snapshot, self._resolver)
            try:
                httpd = make_server(
                    self._host,
                    self._port,
                    app,
                    server_class=ThreadingWSGIServer,
                    handler_class=LoggingRequestHandler,
                )
            except OSError as exc:
                LOG.error("Unable to bind %s:%s: %s", self._host, self._port, exc)
                self._set_state(ServerState.STOPPED)
                raise ServerStartError(
                    f"unable to bind {self._host}:{self._port}: {exc}"
                ) from exc

            self._httpd = httpd
            self._snapshot = snapshot
            self._thread = threading.Thread(
                target=httpd.serve_forever, name="fileserver", daemon=True
            )
            self._stopped.clear()
            self._thread.start()
            LOG.info(
                "File server listening on %s:%s with %d file(s)",
                self._host,
                httpd.server_port,
                len(snapshot),
            )
            self._set_state(ServerState.LISTENING)

    def stop(self, graceful=True):
        """Stop the listener and free its port; no-op when stopped."""
        with self._lock:
            httpd, thread = self._httpd, self._thread
            if httpd is None:
                return
            self._httpd = None
            self._thread = None
            self._snapshot = None
            httpd.shutdown()
            httpd.server_close()
            thread.join()
            LOG.info("File server stopped")
            self._stopped.set()
            self._set_state(ServerState.STOPPED)

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the service to stop; returns True once stopped."""
        return self._stopped.wait(timeout)

    def reset(self, exiting=False):
        """Reset service state (no-op)."""
        return
