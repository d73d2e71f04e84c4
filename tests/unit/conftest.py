"""
Minimal conftest for unit tests.

Unit tests exercise individual classes in isolation: channels read from
in-memory streams, dispatchers talk to scripted fake channels and caches
use an injected clock.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports (idempotent)
project_root = Path(__file__).parent.parent.parent.resolve()
project_root_str = str(project_root)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
