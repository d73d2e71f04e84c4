"""
Root conftest for all tests.

This conftest only contains minimal shared configuration.
- Unit tests (tests/unit/) run against in-memory streams and fakes
- Integration tests (tests/integration/) spawn a fake language server

Neither needs Node.js or the real Tailwind language server.
"""

import pytest


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (no subprocesses)"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests that spawn the fake language server process",
    )
