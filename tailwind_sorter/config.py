"""Runtime configuration for tailwind_sorter."""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence
import os
import shlex

from dotenv import find_dotenv, load_dotenv

from tailwind_sorter.exceptions import ConfigurationError

# Oldest @tailwindcss/language-server release known to answer sortSelection.
MIN_SERVER_VERSION = "0.0.27"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class SorterConfig:
    """Configuration for a TailwindSorterClient.

    Attributes:
        server_command: Command that launches the language server, without
            the ``--stdio`` flag. Resolved from node_modules/PATH if None.
        start_dir: Directory the project search starts from. Defaults to the
            current working directory.
        cache_ttl: Seconds a sorted result stays cached.
        request_timeout: Seconds to wait for the response to one request.
        read_timeout: Seconds a single read on the server's stdout may block.
        drain_timeout: Seconds spent answering server requests after the
            handshake.
        shutdown_timeout: Seconds to wait for the process to exit before it
            is killed.
        min_server_version: Versions below this log a warning.
        debug: Trace every protocol message at DEBUG level.
        environment: Extra variables for the server process.
    """

    server_command: Optional[Sequence[str]] = None
    start_dir: Optional[str] = None
    cache_ttl: float = 5.0
    request_timeout: float = 5.0
    read_timeout: float = 5.0
    drain_timeout: float = 0.5
    shutdown_timeout: float = 2.0
    min_server_version: str = MIN_SERVER_VERSION
    debug: bool = False
    environment: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        for name in (
            "cache_ttl",
            "request_timeout",
            "read_timeout",
            "drain_timeout",
            "shutdown_timeout",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value!r}")

        if self.server_command is not None:
            self.server_command = list(self.server_command)
            if not self.server_command:
                raise ConfigurationError("server_command must not be empty")

    @classmethod
    def from_env(cls, **overrides) -> "SorterConfig":
        """Build a config from TAILWIND_SORTER_* variables (and a .env file)."""
        load_dotenv(find_dotenv(usecwd=True))

        values = {}
        command = os.getenv("TAILWIND_SORTER_SERVER")
        if command:
            values["server_command"] = shlex.split(command)

        for env_name, key in (
            ("TAILWIND_SORTER_CACHE_TTL", "cache_ttl"),
            ("TAILWIND_SORTER_REQUEST_TIMEOUT", "request_timeout"),
        ):
            raw = os.getenv(env_name)
            if raw is None:
                continue
            try:
                values[key] = float(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{env_name} must be a number, got {raw!r}"
                ) from exc

        debug = os.getenv("TAILWIND_SORTER_DEBUG")
        if debug is not None:
            values["debug"] = debug.strip().lower() in _TRUTHY

        values.update(overrides)
        return cls(**values)
