from __future__ import annotations

import pytest

from tests.durable_breaker.support.fakes import (
    FakeClock,
    FakeLogger,
    FlakyAdapter,
    RecordingListener,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually advanced clock per test."""
    return FakeClock()


@pytest.fixture
def flaky_adapter() -> FlakyAdapter:
    return FlakyAdapter()


@pytest.fixture
def recording_listener() -> RecordingListener:
    return RecordingListener()
