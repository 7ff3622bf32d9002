"""Shared fixtures: a local target service and misbehaving endpoints."""

from __future__ import annotations

import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest


class TargetServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address):
        super().__init__(address, TargetHandler)
        self.lock = threading.Lock()
        self.received: list[dict] = []
        self.order_status = 201
        self.health_status = 200

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"

    def record(self, method: str, path: str, headers, body: bytes) -> None:
        with self.lock:
            self.received.append(
                {"method": method, "path": path, "headers": dict(headers), "body": body}
            )

    def count(self) -> int:
        with self.lock:
            return len(self.received)


class TargetHandler(BaseHTTPRequestHandler):
    server: TargetServer

    def do_GET(self) -> None:
        self.server.record("GET", self.path, self.headers, b"")
        if self.path == "/health":
            self._reply(self.server.health_status, {"status": "healthy"})
        else:
            self._reply(404, {"error": "not found"})

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length)
        self.server.record("POST", self.path, self.headers, body)
        if self.path == "/order":
            self._reply(self.server.order_status, {"orderId": "order-1"})
        else:
            self._reply(404, {"error": "not found"})

    def _reply(self, status: int, payload: dict) -> None:
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args) -> None:  # noqa: A002
        pass


@pytest.fixture
def target_server():
    server = TargetServer(("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, name="target-server", daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def silent_server():
    """Accepts TCP connections (via the listen backlog) but never answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(64)
    host, port = sock.getsockname()
    yield f"http://{host}:{port}"
    sock.close()


@pytest.fixture
def closed_port_url():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    host, port = sock.getsockname()
    sock.close()
    return f"http://{host}:{port}"
