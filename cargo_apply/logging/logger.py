# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for cargo-apply.

Every log entry is one JSON object on one line:

  {"ts": "2026-...", "level": "INFO", "module": "cargo_apply.runner.driver",
   "msg": "processing", "package": "serde=1.0.0"}

Routing:
  - DEBUG and INFO go to stdout. That is the per-package progress feed.
  - WARNING and above go to stderr, so fatal setup diagnostics land on the
    error stream the way a shell user expects.
  - An optional log file receives everything at or above the chosen level.

While a package attempt runs in-process, file descriptors 1 and 2 point at
that package's capture files, so anything logged during the attempt ends up
there and not on the console.

`get_logger` is the only way loggers are created in this codebase.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_STANDARD_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "relativeCreated",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "pathname",
    "filename",
    "module",
    "levelno",
    "levelname",
    "processName",
    "process",
    "threadName",
    "thread",
    "message",
    "msecs",
    "taskName",
})


class JsonFormatter(logging.Formatter):
    """
    Serialize a LogRecord to a single JSON line.

    The four fixed fields are `ts`, `level`, `module` and `msg`. Anything the
    caller passed through `extra=` is merged in as additional keys, and an
    attached exception is rendered under `exc`.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class _BelowLevelFilter(logging.Filter):
    """Let through only records strictly below `limit`."""

    def __init__(self, limit: int) -> None:
        super().__init__()
        self._limit = limit

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self._limit


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create (or fetch) a structured JSON logger.

    Args:
        name: Logger name, usually `__name__` of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional file that receives a copy of every entry.

    Returns:
        A logging.Logger writing JSON lines, not propagating to the root logger.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    # Calling get_logger twice for one name must not stack handlers.
    if logger.handlers:
        return logger

    formatter = JsonFormatter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(_BelowLevelFilter(logging.WARNING))
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def _has_file_handler(logger: logging.Logger, log_file: Path) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target
        for handler in logger.handlers
    )


def configure_package_loggers(
    log_level: str,
    log_file: Optional[Path] = None,
    package: str = "cargo_apply",
) -> None:
    """
    Apply the run's logging settings to every logger already created under
    `package`.

    Module loggers are created at import time with the default level and no
    file handler, before the command line has been parsed. The CLI calls this
    once it knows the level and the optional log file. All loggers share a
    single file handler, and calling this again with the same file does not
    add a second one.
    """
    level = _resolve_log_level(log_level)
    file_handler: Optional[logging.FileHandler] = None
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter())

    prefix = f"{package}."
    attached = False
    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name != package and not name.startswith(prefix):
            continue
        candidate.setLevel(level)
        if file_handler is not None and not _has_file_handler(candidate, log_file):
            candidate.addHandler(file_handler)
            attached = True

    if file_handler is not None and not attached:
        file_handler.close()
