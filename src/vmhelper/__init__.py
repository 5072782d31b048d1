# Lightweight package init: avoid eager imports that can fail at console start.
__all__ = ["TcpService", "ParseResult"]

def __getattr__(name):
    if name == "TcpService":
        from .devices.tcp_service import TcpService as _TcpService
        return _TcpService
    if name == "ParseResult":
        from .parse_result import ParseResult as _ParseResult
        return _ParseResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
