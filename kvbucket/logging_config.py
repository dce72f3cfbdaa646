"""Logging configuration for kvbucket.

The package logs through loguru and is silent until an application opts in
with :func:`setup_logging` (or ``logger.enable("kvbucket")``).
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

PACKAGE = "kvbucket"


class JSONFormatter:
    """JSON formatter for structured logging."""

    def __call__(self, record: dict[str, Any]) -> str:
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "module": record.get("module", ""),
            "function": record.get("function", ""),
            "line": record.get("line", 0),
        }

        exception = record.get("exception")
        if exception:
            log_data["exception"] = {
                "type": exception.type.__name__ if exception.type else None,
                "value": str(exception.value) if exception.value else None,
            }

        log_data.update(record.get("extra", {}))

        # loguru treats the returned string as a format template
        return json.dumps(log_data, ensure_ascii=False, default=str).replace("{", "{{").replace("}", "}}") + "\n"


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure handlers and enable kvbucket's log records.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to emit one JSON object per line.
        log_file: Optional path to a rotating log file. If None, logs only to stderr.
    """
    logger.remove()

    formatter: Any
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

    logger.add(sys.stderr, format=formatter, level=level, colorize=not json_format)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )

    logger.enable(PACKAGE)


def get_logger(name: str | None = None) -> Any:
    """Return the loguru logger, bound to ``name`` when given."""
    if name:
        return logger.bind(name=name)
    return logger


__all__ = ["JSONFormatter", "setup_logging", "get_logger"]
