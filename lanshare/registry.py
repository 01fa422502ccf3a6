# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
import threading
from typing import Callable, Iterable

from lanshare import netinfo
from lanshare.fileserver.handles import FileHandle, Snapshot, to_handle
from lanshare.fileserver.resolver import FileResolver
from lanshare.fileserver.server import FileServer, ServerState, make_application

LOG = logging.getLogger(__name__)


class HandleRegistry:
    """Ordered set of shared files driving exactly one file server.

    ``replace`` and ``clear`` are the only ways the server is started or
    stopped. Each replace hands the server a new immutable snapshot; the
    listing is never mutated while a listener serves it.
    """

    def __init__(
        self,
        resolver: FileResolver | None = None,
        host: str | None = None,
        port: int | None = None,
        server: FileServer | None = None,
    ):
        self._server = server or FileServer(resolver, host=host, port=port)
        self._resolver = resolver
        self._snapshot = Snapshot()
        self._lock = threading.Lock()
        self._subscribers: list[Callable[[bool], None]] = []
        self._server.add_listener(self._on_server_state)

    @property
    def handles(self) -> tuple[FileHandle, ...]:
        """Return the current selection in insertion order."""
        return self._snapshot.handles

    @property
    def is_listening(self) -> bool:
        return self._server.is_listening

    @property
    def url(self) -> str | None:
        """Return the download index URL while listening."""
        if not self._server.is_listening:
            return None
        return netinfo.download_url(self._server.host, self._server.port)

    def subscribe(self, callback: Callable[[bool], None]) -> None:
        """Register a callable notified with the listening flag on changes."""
        self._subscribers.append(callback)

    def _on_server_state(self, state: ServerState) -> None:
        if state is ServerState.STARTING:
            return
        listening = state is ServerState.LISTENING
        for callback in list(self._subscribers):
            callback(listening)

    def replace(self, handles: Iterable) -> Snapshot:
        """Share ``handles`` instead of the current selection.

        Every handle gets a fresh tag. The server is restarted against the
        new snapshot; ServerStartError propagates if the port cannot be
        bound.
        """
        snapshot = Snapshot.of(to_handle(h) for h in handles)
        with self._lock:
            self._snapshot = snapshot
            LOG.info("Sharing %d file(s)", len(snapshot))
            self._server.start(snapshot)
        return snapshot

    def clear(self) -> None:
        """Stop sharing and forget the selection."""
        with self._lock:
            self._server.stop()
            self._snapshot = Snapshot()

    def application(self):
        """Return a WSGI application bound to the current selection."""
        return make_application(self._snapshot, self._resolver)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the server stops."""
        return self._server.wait(timeout)
