"""
Log formatters for sync runs.

JSONFormatter writes one JSON object per record, for log shipping and
rotated files. ConsoleFormatter is the readable variant the CLI uses on
stderr. Both surface ``extra=`` context such as table and record ids.
"""

import json
import logging
import os
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

DEFAULT_APP_NAME = "lark-base-sync"

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime",
})


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Caller-supplied context attached to a record through ``extra=``"""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


def _exception_payload(exc_info) -> dict[str, Any]:
    exc_type, exc_value, _ = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc_value),
        "traceback": traceback.format_exception(*exc_info),
    }


class JSONFormatter(logging.Formatter):
    """
    Structured formatter: level, logger, message and app on every line

    Args:
        include_timestamp: Add an ISO8601 UTC ``timestamp``
        include_hostname: Add the host the run executed on
        app_name: Value of the ``app`` key
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_hostname: bool = True,
        app_name: str = DEFAULT_APP_NAME,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_hostname = include_hostname
        self.app_name = app_name
        self.hostname = os.uname().nodename if include_hostname else None

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }
        if self.include_timestamp:
            payload["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()
        if self.hostname:
            payload["hostname"] = self.hostname
        if record.exc_info:
            payload["exception"] = _exception_payload(record.exc_info)

        context = extra_fields(record)
        if context:
            payload["context"] = context

        # Field and table names are frequently CJK
        return json.dumps(payload, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Readable single-line formatter, level colored when stderr is a terminal

    Extra context is appended as ``[key=value, ...]``.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(fmt=PLAIN_FORMAT, datefmt=PLAIN_DATEFMT)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.COLORS.get(levelname) if self.use_colors else None
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            line = super().format(record)
        finally:
            record.levelname = levelname

        context = extra_fields(record)
        if not context:
            return line
        return line + " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"
