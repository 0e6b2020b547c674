"""Core FormulaBase utilities.

This module exports core utilities for use throughout the application.
"""

from formulabase.core.config import Settings, get_settings
from formulabase.core.logging import (
    LoggingContext,
    clear_context,
    configure_default_logging,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "configure_default_logging",
    "get_logger",
    "LoggingContext",
    "clear_context",
]
