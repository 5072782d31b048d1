"""
Pytest fixtures for the vmhelper test suite.

``FakePeer`` is an in-process TCP server on 127.0.0.1 that hands every
accepted connection to a handler function running on its own thread.
"""

import socket
import threading
import time
from typing import Callable, List

import pytest


class FakePeer:
    def __init__(self, handler: Callable[[socket.socket], None]):
        self.handler = handler
        self.accepted = 0
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(16)
        self.port = self._server.getsockname()[1]
        self._conns: List[socket.socket] = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._server.accept()
            except OSError:
                return
            self.accepted += 1
            self._conns.append(conn)
            threading.Thread(target=self._run, args=(conn,), daemon=True).start()

    def _run(self, conn):
        try:
            self.handler(conn)
        except OSError:
            pass

    def wait_for_accepts(self, n: int, timeout: float = 2.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.accepted >= n:
                return True
            time.sleep(0.01)
        return self.accepted >= n

    def close(self):
        self._stop.set()
        self._server.close()
        for conn in self._conns:
            try:
                conn.close()
            except OSError:
                pass


def read_until(conn: socket.socket, terminator: bytes) -> bytes:
    """Read from ``conn`` until ``terminator`` arrives; b"" if the client went away."""
    buf = b""
    while terminator not in buf:
        chunk = conn.recv(1024)
        if not chunk:
            return b""
        buf += chunk
    return buf


@pytest.fixture
def fake_peer():
    """Factory: ``fake_peer(handler)`` starts a peer that is closed after the test."""
    peers = []

    def _start(handler):
        peer = FakePeer(handler)
        peers.append(peer)
        return peer

    yield _start
    for peer in peers:
        peer.close()


@pytest.fixture
def free_port():
    """A port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
