"""Pytest fixtures for chatbridge tests."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
import structlog

from tests.helpers import FakeClock, FakeSleep, RecordingLogger


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    """Sleep that records delays instead of waiting."""
    return FakeSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Millisecond clock advanced by hand."""
    return FakeClock()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()
