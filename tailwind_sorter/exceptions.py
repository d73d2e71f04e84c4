"""Exception hierarchy for the tailwind_sorter library."""

from typing import Any, Optional


class TailwindSorterError(Exception):
    """Base exception for all tailwind_sorter errors."""

    pass


class ConfigurationError(TailwindSorterError):
    """Configuration is invalid or missing required values."""

    pass


class WorkerNotFoundError(TailwindSorterError):
    """The Tailwind CSS language server binary is missing or not executable."""

    pass


class HandshakeError(TailwindSorterError):
    """The language server did not complete the initialize handshake."""

    pass


class ProtocolError(TailwindSorterError):
    """The byte stream shared with the language server is unusable."""

    pass


class FramingError(ProtocolError):
    """Missing or malformed Content-Length header, or a truncated body."""

    pass


class DecodeError(ProtocolError):
    """A complete message body is not a valid JSON-RPC object."""

    pass


class ConnectionLostError(ProtocolError):
    """The language server closed its streams or the pipe broke."""

    pass


class RequestTimeoutError(TailwindSorterError, TimeoutError):
    """No matching message arrived within the allowed time."""

    def __init__(
        self,
        message: str,
        timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
    ):
        self.timeout = timeout
        self.read_timeout = read_timeout
        super().__init__(message)


class DomainError(TailwindSorterError):
    """The language server answered with a structured error payload."""

    def __init__(
        self, message: str, code: Optional[int] = None, data: Any = None
    ):
        self.code = code
        self.data = data
        super().__init__(message)


class VersionTooOldWarning(UserWarning):
    """The detected language server version is below the supported minimum."""

    pass
