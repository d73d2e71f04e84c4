import hashlib
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from tailwind_sorter.logger import setup_logger

logger = setup_logger(__name__)


def fingerprint(content: str) -> str:
    """SHA256 hex digest of ``content``; the cache key for one class string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    fingerprint: str
    value: str
    created_at: float


class ResultCache:
    """
    Sorted class strings keyed by a fingerprint of the input.

    Entries expire ``ttl`` seconds after they were stored and are evicted
    lazily on lookup. ``invalidate_all`` drops everything; it runs whenever
    the staged Tailwind config changes.
    """

    def __init__(
        self, ttl: float = 5.0, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, content: str) -> bool:
        return fingerprint(content) in self._entries

    def get(self, content: str) -> Optional[str]:
        key = fingerprint(content)
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.created_at < self.ttl:
            logger.debug(f"Cache hit for classes: {content}")
            return entry.value

        del self._entries[key]
        return None

    def put(self, content: str, value: str) -> None:
        key = fingerprint(content)
        self._entries[key] = CacheEntry(
            fingerprint=key, value=value, created_at=self._clock()
        )

    def invalidate_all(self) -> None:
        if self._entries:
            logger.debug(f"Clearing {len(self._entries)} cached results")
        self._entries.clear()
