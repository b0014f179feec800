"""Shared pytest fixtures: a fake HTTP endpoint on an ephemeral loopback port."""

from __future__ import annotations

import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Tuple

import pytest


class FakeEndpoint:
    """Canned responses keyed by (method, path); every request is recorded."""

    def __init__(self):
        self._lock = threading.Lock()
        self.routes: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.url = ""

    def set(self, method: str, path: str, status: int, payload: Any) -> None:
        self.routes[(method, path)] = (status, payload)

    def record(self, method: str, path: str, body: Any) -> Tuple[int, Any]:
        with self._lock:
            self.requests.append({"method": method, "path": path, "body": body})
        return self.routes.get((method, path), (404, {"error": "not found"}))

    def calls(self, method: str, path: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [r for r in self.requests if r["method"] == method and r["path"] == path]


class _Handler(BaseHTTPRequestHandler):
    endpoint: FakeEndpoint

    def _handle(self, method: str) -> None:
        length = int(self.headers.get("content-length", "0") or 0)
        raw = self.rfile.read(length) if length else b""
        body: Any = None
        if raw:
            try:
                body = json.loads(raw.decode("utf-8"))
            except json.JSONDecodeError:
                body = raw.decode("utf-8", errors="replace")
        status, payload = self.endpoint.record(method, self.path, body)
        out = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(out)))
        self.end_headers()
        self.wfile.write(out)

    def do_GET(self) -> None:  # noqa: N802
        self._handle("GET")

    def do_POST(self) -> None:  # noqa: N802
        self._handle("POST")

    def do_PUT(self) -> None:  # noqa: N802
        self._handle("PUT")

    def log_message(self, _format: str, *_args: Any) -> None:
        return


@pytest.fixture
def fake_endpoint():
    endpoint = FakeEndpoint()

    class Handler(_Handler):
        pass

    Handler.endpoint = endpoint
    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    endpoint.url = f"http://127.0.0.1:{server.server_address[1]}"
    try:
        yield endpoint
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def unreachable_url() -> str:
    # Bind then close, so nothing is listening on the port.
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}"
