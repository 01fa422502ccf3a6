# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import socket as pysocket
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import urlopen

import pytest
from webob import Request

from lanshare.fileserver.handles import FileHandle, Snapshot
from lanshare.fileserver.server import FileServer, ServerState
from lanshare.fileserver.utils import ServerStartError
from lanshare.registry import HandleRegistry

HOST = "127.0.0.1"


def _get(url: str):
    """Fetch ``url`` returning (status, headers, body) for any status."""
    try:
        with urlopen(url, timeout=5) as resp:
            return resp.status, resp.headers, resp.read()
    except HTTPError as e:
        return e.code, e.headers, e.read()


def _file_url(base: str, key: str) -> str:
    return f"{base}file?uri={quote(key, safe='')}"


@pytest.fixture
def free_port() -> int:
    with pysocket.socket(pysocket.AF_INET, pysocket.SOCK_STREAM) as s:
        s.bind((HOST, 0))
        return s.getsockname()[1]


@pytest.fixture
def registry(free_port):
    registry = HandleRegistry(host=HOST, port=free_port)
    yield registry
    registry.clear()


@pytest.fixture
def files(tmp_path: Path) -> list[str]:
    paths = []
    for name, size in (("alpha.txt", 10), ("beta.bin", 4096), ("gamma.csv", 0)):
        p = tmp_path / name
        p.write_bytes(b"x" * size)
        paths.append(str(p))
    return paths


class TestHandleRegistry:
    """Tests for HandleRegistry driving a live file server."""

    def test_replace_serves_index(self, registry, files):
        registry.replace(files)
        assert registry.is_listening
        assert [h.canonical_key for h in registry.handles] == files

        status, headers, body = _get(registry.url)
        assert status == 200
        text = body.decode()
        assert text.count("Download -> ") == 3
        positions = [text.index(f"Download -> {Path(f).name}") for f in files]
        assert positions == sorted(positions)

    def test_replace_serves_files(self, registry, files):
        registry.replace(files)
        for key in files:
            status, headers, body = _get(_file_url(registry.url, key))
            assert status == 200
            assert headers["Content-Disposition"] == f'attachment; filename="{Path(key).name}"'
            assert int(headers["Content-Length"]) == Path(key).stat().st_size
            assert body == Path(key).read_bytes()

    def test_error_statuses(self, registry, files):
        registry.replace(files)
        base = registry.url
        assert _get(f"{base}file")[0] == 400
        assert _get(_file_url(base, "/not/shared.txt"))[0] == 404
        status, _, body = _get(f"{base}nope")
        assert status == 404
        assert body == b"404 Not Found"

    def test_resolution_failure_keeps_listener(self, registry, files):
        registry.replace(files)
        Path(files[0]).unlink()
        assert _get(_file_url(registry.url, files[0]))[0] == 500
        assert _get(_file_url(registry.url, files[1]))[0] == 200

    def test_concurrent_downloads(self, registry, files):
        registry.replace(files)
        url = _file_url(registry.url, files[1])
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(_get, [url] * 8))
        assert all(status == 200 and len(body) == 4096 for status, _, body in results)

    def test_replace_restarts_on_same_port(self, registry, files, free_port):
        registry.replace(files[:2])
        old_url = registry.url
        registry.replace(files[2:])
        assert registry.is_listening
        assert registry.url == old_url
        assert _get(_file_url(old_url, files[0]))[0] == 404
        assert _get(_file_url(registry.url, files[2]))[0] == 200

    def test_replace_twice_same_index(self, registry, files):
        registry.replace(files)
        first_tags = [h.tag for h in registry.handles]
        first = _get(registry.url)[2]
        registry.replace(files)
        assert [h.tag for h in registry.handles] != first_tags
        assert _get(registry.url)[2] == first

    def test_replace_empty(self, registry):
        registry.replace([])
        assert registry.is_listening
        status, _, body = _get(registry.url)
        assert status == 200
        assert b"Download -> " not in body

    def test_clear(self, registry, files):
        registry.replace(files)
        url = registry.url
        registry.clear()
        assert not registry.is_listening
        assert registry.handles == ()
        assert registry.url is None
        with pytest.raises(URLError):
            urlopen(url, timeout=2)

        app = registry.application()
        assert "Download -> " not in Request.blank("/").get_response(app).text
        resp = Request.blank(_file_url("/", files[0])).get_response(app)
        assert resp.status_int == 404

        registry.clear()
        assert not registry.is_listening

    def test_subscribers_follow_server_state(self, registry, files):
        events = []
        registry.subscribe(events.append)
        registry.replace(files)
        registry.replace(files)
        registry.clear()
        registry.clear()
        assert events == [True, False, True, False]

    def test_bind_failure_propagates(self, files):
        with pysocket.socket(pysocket.AF_INET, pysocket.SOCK_STREAM) as s:
            s.bind((HOST, 0))
            s.listen()
            registry = HandleRegistry(host=HOST, port=s.getsockname()[1])
            with pytest.raises(ServerStartError):
                registry.replace(files)
            assert not registry.is_listening


class TestFileServer:
    """Tests for FileServer lifecycle."""

    def test_stop_when_stopped_is_noop(self):
        server = FileServer(host=HOST, port=0)
        server.stop()
        server.stop()
        assert server.state is ServerState.STOPPED
        assert server.wait(timeout=0)

    def test_state_transitions(self):
        states = []
        server = FileServer(host=HOST, port=0)
        server.add_listener(states.append)
        server.start(Snapshot.of([FileHandle("/a")]))
        try:
            assert server.is_listening
            assert server.port != 0
            assert len(server.snapshot) == 1
            assert not server.wait(timeout=0)
        finally:
            server.stop()
        assert states == [ServerState.STARTING, ServerState.LISTENING, ServerState.STOPPED]
        assert server.snapshot is None
        assert server.wait(timeout=0)

    def test_start_without_snapshot(self):
        server = FileServer(host=HOST, port=0)
        server.start()
        try:
            status, _, body = _get(f"http://{HOST}:{server.port}/")
            assert status == 200
            assert b"Download -> " not in body
        finally:
            server.stop()

    def test_stop_frees_port(self, free_port):
        server = FileServer(host=HOST, port=free_port)
        server.start(Snapshot())
        server.stop()
        with pysocket.socket(pysocket.AF_INET, pysocket.SOCK_STREAM) as s:
            s.setsockopt(pysocket.SOL_SOCKET, pysocket.SO_REUSEADDR, 1)
            s.bind((HOST, free_port))

    def test_bind_failure_state(self):
        with pysocket.socket(pysocket.AF_INET, pysocket.SOCK_STREAM) as s:
            s.bind((HOST, 0))
            s.listen()
            server = FileServer(host=HOST, port=s.getsockname()[1])
            with pytest.raises(ServerStartError) as exc_info:
                server.start(Snapshot())
        assert server.state is ServerState.STOPPED
        assert isinstance(exc_info.value.__cause__, OSError)
