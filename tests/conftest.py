"""Pytest configuration for all tests."""

import pytest
import structlog

from formulabase.core.config import get_settings
from formulabase.core.logging import configure_default_logging


@pytest.fixture(autouse=True)
def _reset_runtime_state():
    """Reset cached settings and restore the quiet logging default after each test.

    The CLI configures structlog against the runner's output stream, which
    is closed once the invocation ends.
    """
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()
    configure_default_logging()
