"""Pytest fixtures for paylink tests."""

import logging
import random
from collections.abc import Generator

import pytest
import structlog

from paylink.host.clock import ManualClock
from paylink.host.visibility import VisibilityState


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging and CLI option state before and after each test.

    This ensures test isolation for logging configuration.
    """
    import paylink.cli.helpers as cli_helpers

    cli_helpers.reset_cli_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_cli_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def manual_clock() -> ManualClock:
    """Deterministic clock starting at t=0."""
    return ManualClock()


@pytest.fixture
def visibility() -> VisibilityState:
    """Host visibility, initially visible."""
    return VisibilityState(visible=True)


@pytest.fixture
def seeded_rng() -> random.Random:
    """Reproducible jitter source."""
    return random.Random(1234)
