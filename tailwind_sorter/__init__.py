"""
tailwind_sorter - sort Tailwind CSS classes with the Tailwind language server.

The client launches ``tailwindcss-language-server --stdio`` in a private
workspace, speaks the language server protocol to it and caches results.

Example:
    >>> from tailwind_sorter import SorterConfig, TailwindSorterClient
    >>>
    >>> config = SorterConfig(cache_ttl=10)
    >>> with TailwindSorterClient(config) as client:
    ...     print(client.sort_classes("p-4 flex mt-2"))
    mt-2 flex p-4

Or from environment:
    >>> client = TailwindSorterClient(SorterConfig.from_env())
"""

from tailwind_sorter.client import TailwindSorterClient, normalize_whitespace
from tailwind_sorter.config import SorterConfig
from tailwind_sorter.exceptions import (
    TailwindSorterError,
    ConfigurationError,
    WorkerNotFoundError,
    HandshakeError,
    ProtocolError,
    FramingError,
    DecodeError,
    ConnectionLostError,
    RequestTimeoutError,
    DomainError,
    VersionTooOldWarning,
)
from tailwind_sorter.project import ProjectContext, ProjectLocator
from tailwind_sorter.version import __version__

__all__ = [
    # Main entry point
    "TailwindSorterClient",
    "normalize_whitespace",
    # Configuration
    "SorterConfig",
    # Project discovery
    "ProjectContext",
    "ProjectLocator",
    # Base exception
    "TailwindSorterError",
    # Configuration errors
    "ConfigurationError",
    # Startup errors
    "WorkerNotFoundError",
    "HandshakeError",
    # Protocol errors
    "ProtocolError",
    "FramingError",
    "DecodeError",
    "ConnectionLostError",
    "RequestTimeoutError",
    # Server errors
    "DomainError",
    "VersionTooOldWarning",
    "__version__",
]
