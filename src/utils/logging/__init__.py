"""
Structured logging configuration for Base table sync

Provides JSON-formatted logging with contextual information (table ids,
record ids, run counters) for both the CLI and embedded callers.

Usage:
    from utils.logging import setup_logging, get_logger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/basesync/app.log")

    # Get logger for your module
    logger = get_logger(__name__)

    # Log with context
    logger.info("Record created", extra={
        "target_table_id": "tblTarget123",
        "record_id": "recAbc",
    })
"""

from .config import configure_from_env, get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "shutdown_logging",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
