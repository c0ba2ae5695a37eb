"""
Structured logging module.

Provides JSON file logging, console output and context propagation.
"""

from gallery_core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from gallery_core.logging.formatters import ConsoleFormatter, JSONFormatter
from gallery_core.logging.periodic_logger import PeriodicStatsLogger
from gallery_core.logging.setup import (
    generate_cycle_id,
    get_log_file_path,
    get_logger,
    setup_logging,
)
from gallery_core.logging.utilities import format_cycle_output

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "generate_cycle_id",
    "get_log_file_path",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Utilities
    "format_cycle_output",
    "PeriodicStatsLogger",
]
