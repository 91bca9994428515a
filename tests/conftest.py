"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from tests.utils import FakeClock, FakeWriter, RecordingSink

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced scheduler for deadline tests."""
    return FakeClock()


@pytest.fixture
def server_sink() -> RecordingSink:
    """Collects bytes written towards the language server."""
    return RecordingSink()


@pytest.fixture
def client_sink() -> RecordingSink:
    """Collects bytes written towards the editor."""
    return RecordingSink()


@pytest.fixture
def fake_writer() -> FakeWriter:
    return FakeWriter()
