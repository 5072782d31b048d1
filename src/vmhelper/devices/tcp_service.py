from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
import logging, socket, threading, time

from ..errors import (
    ProtocolError,
    ServiceConnectionError,
    ServiceTimeoutError,
    VisionServiceError,
)
from ..parse_result import ParseResult

log = logging.getLogger(__name__)

ENCODING = "utf-8"
RECV_BUFSIZE = 1024
CONNECT_GATE_TIMEOUT = 4.0  # seconds to wait for a concurrent connect attempt

@dataclass(eq=False)
class TcpService:
    """
    Single-connection client for the vision service's text protocol.

    One socket, one outstanding command. Concurrent callers are queued on the
    communication lock; reconnects are serialized on a separate connection
    lock so ``connect()`` never waits behind a running exchange. Any transport
    failure drops the socket and the next call reconnects.
    """
    host: str = "127.0.0.1"
    port: int = 7930
    timeout_ms: int = 3000
    send_terminator: Optional[str] = None
    receive_terminator: Optional[str] = None

    # internal
    _sock: Optional[socket.socket] = field(default=None, repr=False)
    _connect_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _comm_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _closed: bool = field(default=False, repr=False)

    def __post_init__(self):
        self._validate(self.port, self.timeout_ms)

    @classmethod
    def from_config(cls, cfg) -> "TcpService":
        """Build a service from an :class:`~vmhelper.config.AppConfig`."""
        return cls(
            host=cfg.server.host,
            port=cfg.server.port,
            timeout_ms=cfg.server.timeout_ms,
            send_terminator=cfg.terminators.send,
            receive_terminator=cfg.terminators.receive,
        )

    # ---------- configuration ----------
    @staticmethod
    def _validate(port: int, timeout_ms: int) -> None:
        if not 0 <= port <= 65535:
            raise ValueError(f"port must be in 0..65535, got {port}")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

    def configure(self, host: str, port: int, timeout_ms: int) -> None:
        """Set the target. The current connection is dropped; the next command reconnects."""
        self._validate(port, timeout_ms)
        self.host = host
        self.port = port
        self.timeout_ms = timeout_ms
        self._dispose_connection()

    def configure_terminators(self, send_terminator: Optional[str] = "\r",
                              receive_terminator: Optional[str] = "\r") -> None:
        """None (or "") disables framing on that side. Applies from the next command."""
        self.send_terminator = send_terminator
        self.receive_terminator = receive_terminator

    # ---------- connection ----------
    @property
    def is_connected(self) -> bool:
        sock = self._sock
        return sock is not None and sock.fileno() != -1

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    def connect(self) -> bool:
        """Best-effort connect. Never raises; returns whether a connection is up."""
        try:
            self._ensure_connected()
            return self.is_connected
        except Exception as e:
            log.warning("Connect to %s:%s failed: %s", self.host, self.port, e)
            return False

    def disconnect(self) -> None:
        self._dispose_connection()

    def close(self) -> None:
        """Disconnect for good; later commands fail with ServiceConnectionError."""
        self._closed = True
        self._dispose_connection()

    def __enter__(self) -> "TcpService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_connected(self) -> None:
        if self.is_connected:
            return
        if not self._connect_lock.acquire(timeout=CONNECT_GATE_TIMEOUT):
            raise ServiceConnectionError(
                f"Timed out waiting for another connection attempt to {self.host}:{self.port}",
                self.host, self.port)
        try:
            # double check: another caller may have connected while we waited
            if self.is_connected:
                return
            self._connect_internal()
        finally:
            self._connect_lock.release()

    def _connect_internal(self) -> None:
        if self._closed:
            raise ServiceConnectionError("TcpService has been closed", self.host, self.port)
        self._dispose_connection()
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise ServiceConnectionError(
                f"Could not connect to vision service at {self.host}:{self.port}: {e}",
                self.host, self.port) from e
        sock.settimeout(self.timeout)
        self._sock = sock
        log.info("Connected to vision service at %s:%s", self.host, self.port)

    def _dispose_connection(self) -> None:
        sock, self._sock = self._sock, None
        if sock:
            try:
                sock.close()
            except OSError as e:
                log.debug("Ignoring error while closing socket: %s", e)
            log.debug("Disconnected from %s:%s", self.host, self.port)

    # ---------- command exchange ----------
    def send_command(self, command: str) -> str:
        """
        Send one command and return the raw response text.

        Raises ServiceConnectionError when no connection can be made,
        ProtocolError when the peer closes mid-exchange and ServiceTimeoutError
        when the round trip exceeds ``timeout_ms``. The connection is dropped
        on every failure.
        """
        self._ensure_connected()

        deadline = time.monotonic() + self.timeout
        if not self._comm_lock.acquire(timeout=max(0.0, deadline - time.monotonic())):
            raise ServiceTimeoutError(
                f"Timed out after {self.timeout_ms} ms waiting for a pending command to finish")
        try:
            return self._exchange(command, deadline)
        except VisionServiceError:
            self._dispose_connection()
            raise
        except socket.timeout as e:
            self._dispose_connection()
            raise ServiceTimeoutError(
                f"No complete response to {command!r} within {self.timeout_ms} ms") from e
        except OSError as e:
            self._dispose_connection()
            raise ProtocolError(f"Connection dropped during {command!r}: {e}") from e
        except Exception:
            self._dispose_connection()
            raise
        finally:
            self._comm_lock.release()

    def send_command_and_parse(self, command: str, pair_separator: str = ",",
                               key_value_separator: str = ":") -> ParseResult:
        response = self.send_command(command)
        return self.parse(response, pair_separator, key_value_separator)

    @staticmethod
    def parse(response: str, pair_separator: str = ",", key_value_separator: str = ":") -> ParseResult:
        return ParseResult(response, pair_separator, key_value_separator)

    def _exchange(self, command: str, deadline: float) -> str:
        # a previous caller's failure may have dropped the socket while we queued
        self._ensure_connected()
        sock = self._sock
        if sock is None:
            raise ServiceConnectionError("Connection was closed before the command could be sent",
                                         self.host, self.port)
        send_terminator, receive_terminator = self.send_terminator, self.receive_terminator

        self._drain(sock, deadline)

        wire = command + send_terminator if send_terminator else command
        sock.settimeout(self._remaining(deadline))
        sock.sendall(wire.encode(ENCODING))
        log.debug("Sent %r", wire)

        response = self._receive(sock, receive_terminator, deadline)
        log.debug("Received %r", response)
        return response

    @staticmethod
    def _remaining(deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ServiceTimeoutError("Command timed out")
        return remaining

    def _drain(self, sock: socket.socket, deadline: float) -> None:
        """Discard bytes left over from an earlier exchange."""
        if sock.fileno() == -1:
            raise ProtocolError("Connection was closed by another caller")
        while time.monotonic() < deadline:
            sock.settimeout(0.0)  # non-blocking: only what is already buffered
            try:
                stale = sock.recv(RECV_BUFSIZE)
            except BlockingIOError:
                return
            if not stale:
                raise ProtocolError("Connection closed by peer before the command was sent")
            log.debug("Discarded %d stale bytes", len(stale))

    def _receive(self, sock: socket.socket, terminator: Optional[str], deadline: float) -> str:
        if not terminator:
            sock.settimeout(self._remaining(deadline))
            data = sock.recv(RECV_BUFSIZE)
            if not data:
                raise ProtocolError("Connection closed by peer while waiting for a response")
            return data.decode(ENCODING, errors="replace")

        buf = bytearray()
        while True:
            sock.settimeout(self._remaining(deadline))
            chunk = sock.recv(RECV_BUFSIZE)
            if not chunk:
                raise ProtocolError(
                    f"Connection closed by peer after {len(buf)} bytes, before terminator {terminator!r}")
            buf += chunk
            text = buf.decode(ENCODING, errors="replace")
            if terminator in text:
                return text.replace(terminator, "", 1)
