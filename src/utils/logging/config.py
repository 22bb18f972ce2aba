"""
Root logger setup for the CLI and embedded callers.

Console output goes to stderr so that JSON printed by the CLI on stdout
stays parseable. File output rotates by size.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

from .formatters import DEFAULT_APP_NAME, PLAIN_DATEFMT, PLAIN_FORMAT, ConsoleFormatter, JSONFormatter

_TRUTHY = ("true", "1", "yes")

# Libraries that log every HTTP round trip at INFO/DEBUG
NOISY_LOGGERS = ("urllib3", "requests", "opentelemetry")


def _detach_handlers(root_logger: logging.Logger) -> None:
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()


def _formatter(json_format: bool, app_name: str, console: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter(app_name=app_name)
    if console:
        return ConsoleFormatter()
    return logging.Formatter(fmt=PLAIN_FORMAT, datefmt=PLAIN_DATEFMT)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = DEFAULT_APP_NAME,
    max_bytes: int = 20 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Replace the root logger's handlers

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Rotating log file path, parent directories created (None disables)
        console_output: Log to stderr
        json_format: JSON lines on every handler
        app_name: ``app`` value in JSON lines
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    _detach_handlers(root_logger)

    handlers: list[logging.Handler] = []
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter(json_format, app_name, console=True))
        handlers.append(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter(json_format, app_name, console=False))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging initialized: level={level}, file={log_file or 'none'}, "
        f"console={console_output}, json={json_format}"
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; kept so callers import logging helpers from one place"""
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Detach and close root handlers (releasing log files), then flush logging"""
    _detach_handlers(logging.getLogger())
    logging.shutdown()


def configure_from_env() -> None:
    """
    Configure logging from LOG_LEVEL, LOG_FILE, LOG_JSON and LOG_CONSOLE

    LOG_CONSOLE defaults to true and LOG_JSON to false.
    """
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        console_output=os.getenv("LOG_CONSOLE", "true").lower() in _TRUTHY,
        json_format=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
    )
