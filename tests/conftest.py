"""Pytest fixtures: an in-memory fake store over httpx.MockTransport, and a live reference server."""

import json
import os
import shutil
import socket
import subprocess
import sys
import tempfile
import time
from urllib.parse import unquote

import httpx
import pytest

from remotestore import RemoteStoreClient

TOKEN = "abc123"
BASE_URL = "https://store.example.com"


class FakeStore:
    """
    Minimal in-memory implementation of the wire protocol. Records every
    request it sees; `status` forces a fixed response status when set.
    """

    def __init__(self, token: str = TOKEN):
        self.token = token
        self.values: dict[str, bytes] = {}
        self.listings: dict[str, list] = {}
        self.requests: list[httpx.Request] = []
        self.status = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("authorization") != self.token:
            return httpx.Response(401)
        if self.status is not None:
            return httpx.Response(self.status)
        path = request.url.raw_path.decode("ascii")
        if path.startswith("/content/"):
            key = unquote(path[len("/content/"):])
            if request.method == "GET":
                if key not in self.values:
                    return httpx.Response(404)
                return httpx.Response(200, content=self.values[key])
            if request.method == "PUT":
                self.values[key] = request.content
                return httpx.Response(200)
            if request.method == "DELETE":
                if self.values.pop(key, None) is None:
                    return httpx.Response(404)
                return httpx.Response(200)
        if path.startswith("/list/") and request.method == "GET":
            prefix = unquote(path[len("/list/"):])
            if prefix not in self.listings:
                return httpx.Response(404)
            return httpx.Response(200, content=json.dumps(self.listings[prefix]).encode())
        return httpx.Response(404)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def make_client(fake_store):
    """Build a client wired to fake_store (or to a custom handler)."""

    def _make(handler=None, token: str = TOKEN, url: str = BASE_URL) -> RemoteStoreClient:
        transport = httpx.MockTransport(handler or fake_store)
        return RemoteStoreClient(token, url, transport=transport)

    return _make


def _wait_for_port(port: int, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=0.2):
                return
        except OSError:
            time.sleep(0.1)
    raise RuntimeError(f"server did not start on port {port}")


@pytest.fixture(scope="session")
def server_port():
    return 18765


@pytest.fixture(scope="session")
def data_dir():
    d = tempfile.mkdtemp(prefix="remotestore_test_")
    yield d
    shutil.rmtree(d, ignore_errors=True)


def start_server(port: int, data_dir: str, token: str = TOKEN) -> subprocess.Popen:
    """Start the reference server in a subprocess and wait until it accepts connections."""
    proc = subprocess.Popen(
        [
            sys.executable, "-m", "remotestore.server",
            "--port", str(port),
            "--data-dir", data_dir,
            "--token", token,
        ],
        cwd=os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    try:
        _wait_for_port(port)
    except RuntimeError:
        proc.kill()
        raise
    return proc


def stop_server(proc: subprocess.Popen) -> None:
    proc.terminate()
    try:
        proc.wait(timeout=3)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait(timeout=2)


@pytest.fixture(scope="session")
def server_process(server_port, data_dir):
    proc = start_server(server_port, data_dir)
    yield proc
    stop_server(proc)


@pytest.fixture
def server_control():
    """(start_server, stop_server) for tests that manage their own server."""
    return start_server, stop_server


@pytest.fixture
def token():
    return TOKEN


@pytest.fixture
def live_url(server_process, server_port):
    return f"http://127.0.0.1:{server_port}"
