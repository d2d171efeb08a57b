"""
Reference HTTP server for the content store protocol (stdlib http.server).
Serves /content/<key> (GET, PUT, DELETE) and /list/<prefix> (GET) from a data
directory, guarded by a static authorization token.
"""

import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import unquote, urlparse

from .connection import TOKEN_ENV
from .store import ContentStore, InvalidKey

logger = logging.getLogger(__name__)


class ContentHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the content API."""

    def _route(self) -> tuple[Optional[str], str]:
        """Split the request path into (endpoint, decoded key)."""
        path = urlparse(self.path).path
        for endpoint in ("content", "list"):
            prefix = f"/{endpoint}/"
            if path.startswith(prefix):
                return endpoint, unquote(path[len(prefix):])
        return None, ""

    def _authorized(self) -> bool:
        if self.headers.get("authorization") == self.server.token:
            return True
        self._send(401, b"unauthorized")
        return False

    def _read_body(self) -> bytes:
        if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
            return self._read_chunked()
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            return b""
        return self.rfile.read(content_length)

    def _read_chunked(self) -> bytes:
        parts = []
        while True:
            size_line = self.rfile.readline()
            size = int(size_line.split(b";", 1)[0].strip(), 16)
            if size == 0:
                # Trailer section ends with an empty line.
                while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                    pass
                break
            parts.append(self.rfile.read(size))
            self.rfile.readline()
        return b"".join(parts)

    def _send(self, status: int, data: bytes = b"", content_type: str = "text/plain") -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_json(self, status: int, body) -> None:
        self._send(status, json.dumps(body).encode("utf-8"), "application/json")

    def do_GET(self) -> None:
        if not self._authorized():
            return
        endpoint, key = self._route()
        try:
            if endpoint == "content":
                value = self.server.store.get(key)
                if value is None:
                    self._send(404, b"not found")
                    return
                self._send(200, value, "application/octet-stream")
            elif endpoint == "list":
                names = self.server.store.list(key)
                if names is None:
                    self._send(404, b"not found")
                    return
                self._send_json(200, names)
            else:
                self._send(404, b"not found")
        except InvalidKey as e:
            self._send(400, str(e).encode("utf-8"))

    def do_PUT(self) -> None:
        if not self._authorized():
            return
        endpoint, key = self._route()
        if endpoint != "content":
            self._send(404, b"not found")
            return
        try:
            body = self._read_body()
        except ValueError:
            self._send(400, b"malformed body")
            return
        try:
            self.server.store.put(key, body)
        except InvalidKey as e:
            self._send(400, str(e).encode("utf-8"))
            return
        self._send(200)

    def do_DELETE(self) -> None:
        if not self._authorized():
            return
        endpoint, key = self._route()
        if endpoint != "content":
            self._send(404, b"not found")
            return
        try:
            deleted = self.server.store.delete(key)
        except InvalidKey as e:
            self._send(400, str(e).encode("utf-8"))
            return
        self._send(200 if deleted else 404)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class ContentHTTPServer(ThreadingHTTPServer):
    """HTTPServer that holds the content store and the expected token."""

    daemon_threads = True

    def __init__(self, server_address, token: str, data_dir: str = "data"):
        if not token:
            raise ValueError("server token must not be empty")
        super().__init__(server_address, ContentHandler)
        self.token = token
        self.store = ContentStore(data_dir=data_dir)


def run_server(host: str = "127.0.0.1", port: int = 8765, data_dir: str = "data", token: str = "") -> None:
    """Run the content HTTP server (blocking)."""
    server = ContentHTTPServer((host, port), token=token, data_dir=data_dir)
    logger.info("serving %s on http://%s:%d", server.store.root, host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    import argparse
    p = argparse.ArgumentParser()
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8765)
    p.add_argument("--data-dir", default="data")
    p.add_argument("--token", default=os.environ.get(TOKEN_ENV, ""))
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args()
    if not args.token:
        p.error(f"--token or {TOKEN_ENV} is required")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_server(host=args.host, port=args.port, data_dir=args.data_dir, token=args.token)
