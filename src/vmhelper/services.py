"""Process-wide shared TcpService, for applications that wire one client at startup."""
from __future__ import annotations
import threading
from typing import Optional
from .config import AppConfig
from .devices.tcp_service import TcpService

_lock = threading.Lock()
_shared: Optional[TcpService] = None

def get_tcp_service(config: Optional[AppConfig] = None) -> TcpService:
    """Return the shared client, creating it from ``config`` (or defaults) on first use."""
    global _shared
    with _lock:
        if _shared is None:
            _shared = TcpService.from_config(config or AppConfig())
        return _shared

def reset_tcp_service() -> None:
    """Close and forget the shared client."""
    global _shared
    with _lock:
        if _shared is not None:
            _shared.close()
        _shared = None
