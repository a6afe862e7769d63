"""Logging configuration for VectorForge.

Provides a setup function for the ``vectorforge`` logger tree and a
module-level logger factory.  Library modules only ever call
:func:`get_logger`; handlers are attached by applications (the CLI) via
:func:`setup_logging`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER_NAME = "vectorforge"
DEFAULT_FORMAT = "%(levelname)-5s | %(name)-24s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-24s | %(message)s"

# Attributes passed through ``extra=`` that the JSON formatter forwards.
_CONTEXT_FIELDS = ("stage", "job_id", "iteration")
_SETUP_LOCK = threading.Lock()


class JsonFormatter(logging.Formatter):
    """JSON log formatter emitting one object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _build_formatter(json_logs: bool, fmt: str) -> logging.Formatter:
    if json_logs:
        return JsonFormatter()
    return logging.Formatter(fmt)


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    log_file: str | None = None,
    json_logs: bool = False,
) -> logging.Logger:
    """Configure handlers on the ``vectorforge`` logger.

    Repeated calls reuse the existing stderr/file handlers instead of
    stacking new ones, so the CLI can call this once per command.

    Args:
        level: Logging level (default: INFO).
        verbose: If True, include timestamps in console output.
        log_file: Optional file path to write logs to (in addition to stderr).
        json_logs: Emit JSON log lines instead of plain text.

    Returns:
        The configured ``vectorforge`` logger.
    """
    with _SETUP_LOCK:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(level)

        stream_handlers = [
            h
            for h in logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
            and getattr(h, "stream", None) is sys.stderr
        ]
        if stream_handlers:
            stream_handler = stream_handlers[0]
            for extra in stream_handlers[1:]:
                logger.removeHandler(extra)
        else:
            stream_handler = logging.StreamHandler(sys.stderr)
            logger.addHandler(stream_handler)
        stream_handler.setFormatter(
            _build_formatter(json_logs, VERBOSE_FORMAT if verbose else DEFAULT_FORMAT)
        )

        if log_file:
            target = os.path.abspath(str(log_file))
            existing = [
                h
                for h in logger.handlers
                if isinstance(h, logging.FileHandler)
                and getattr(h, "baseFilename", None) == target
            ]
            if existing:
                file_handler = existing[0]
            else:
                file_handler = logging.FileHandler(log_file, encoding="utf-8")
                logger.addHandler(file_handler)
            file_handler.setFormatter(_build_formatter(json_logs, VERBOSE_FORMAT))

        return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a VectorForge module.

    Args:
        name: Module name (e.g., ``"pipeline"``, ``"stages.tracing"``).

    Returns:
        A logger instance under the ``vectorforge`` namespace.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
