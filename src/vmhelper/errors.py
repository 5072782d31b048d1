"""Exception types raised by the vision service client and response parser."""
from typing import Optional


class VisionServiceError(Exception):
    """Base exception for vmhelper errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ServiceConnectionError(VisionServiceError, ConnectionError):
    """The TCP connection could not be established (refused, DNS, connect timeout)."""

    def __init__(self, message: str, host: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message, {"host": host, "port": port})
        self.host = host
        self.port = port


class ProtocolError(VisionServiceError):
    """The peer closed or reset the stream before a full response was read."""


class ServiceTimeoutError(VisionServiceError, TimeoutError):
    """A send/receive round trip exceeded the configured timeout."""


class RemoteError(VisionServiceError):
    """The vision service reported an error inline in its response."""

    def __init__(self, response: str):
        super().__init__(f"Vision service returned an error: {response!r}", {"response": response})
        self.response = response


class KeyNotFoundError(VisionServiceError, KeyError):
    """Strict accessor asked for a key the response does not contain."""

    def __init__(self, key: str, response: str, array: bool = False):
        kind = "Array key" if array else "Key"
        super().__init__(f"{kind} {key!r} not found in response {response!r}",
                         {"key": key, "response": response})
        self.key = key


class ValueFormatError(VisionServiceError, ValueError):
    """Strict accessor could not convert a value to the requested type."""

    def __init__(self, key: str, value: str, type_name: str, index: Optional[int] = None):
        where = f"key {key!r}" if index is None else f"array key {key!r} index {index}"
        super().__init__(f"Cannot convert value {value!r} of {where} to {type_name}",
                         {"key": key, "value": value, "index": index})
        self.key = key
        self.value = value
        self.index = index
