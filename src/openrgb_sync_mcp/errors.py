"""Error taxonomy for talking to an OpenRGB server.

Connection and timeout errors also derive from the matching builtins so
callers that only know about ``ConnectionError`` / ``TimeoutError`` still
catch them.
"""

from __future__ import annotations


class OpenRGBError(Exception):
    """Base class for every error raised by this package."""

    code = "ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class OpenRGBConnectionError(OpenRGBError, ConnectionError):
    """Connecting to, or writing to, the server failed."""

    code = "CONNECTION_ERROR"

    def __init__(
        self,
        message: str,
        address: str | None = None,
        port: int | None = None,
    ) -> None:
        super().__init__(message)
        self.address = address
        self.port = port


class OpenRGBProtocolError(OpenRGBError):
    """A response was malformed or did not match the request."""

    code = "PROTOCOL_ERROR"

    def __init__(self, message: str, command_id: int | None = None) -> None:
        super().__init__(message)
        self.command_id = command_id


class OpenRGBParseError(OpenRGBError):
    """A codec read ran past the end of its buffer."""

    code = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        offset: int | None = None,
        buffer_size: int | None = None,
    ) -> None:
        super().__init__(message)
        self.offset = offset
        self.buffer_size = buffer_size


class OpenRGBTimeoutError(OpenRGBError, TimeoutError):
    """A response did not complete within the allowed time."""

    code = "TIMEOUT_ERROR"

    def __init__(self, message: str, timeout: float | None = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class DiscoveryError(OpenRGBError):
    """Client registration or the controller count query failed.

    The underlying error is available as ``__cause__``.
    """

    code = "DISCOVERY_ERROR"


def format_error_message(error: BaseException) -> str:
    """Create a user-facing message from any exception."""
    if isinstance(error, OpenRGBError):
        return f"OpenRGB {error.code}: {error.message}"
    return str(error)
