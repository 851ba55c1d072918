"""Structured logging configuration for the furniture estimator."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger


_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


class JSONFormatter:
    """Render loguru records as one JSON object per line."""

    def __call__(self, record: dict[str, Any]) -> str:
        payload = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            "module": record.get("module", ""),
            "function": record.get("function", ""),
            "line": record.get("line", 0),
        }

        exception = record.get("exception")
        if exception is not None:
            payload["exception"] = {
                "type": exception.type.__name__ if exception.type else None,
                "value": str(exception.value) if exception.value else None,
            }

        # bound context such as stage=postprocess or marker_id=3
        payload.update(record.get("extra") or {})

        # loguru treats the returned string as a format template
        return json.dumps(payload, ensure_ascii=False, default=str).replace("{", "{{").replace("}", "}}") + "\n"


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure loguru sinks for the API process.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        json_format: Emit one JSON document per record instead of coloured text.
        log_file: Optional file that also receives the records (rotated at 10 MB).
    """
    logger.remove()

    fmt: Any = JSONFormatter() if json_format else _TEXT_FORMAT
    logger.add(sys.stderr, format=fmt, level=level, colorize=not json_format)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=fmt,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )


def setup_logging_from_env() -> None:
    """Read LOG_LEVEL, JSON_LOGGING and LOG_FILE and configure logging."""
    json_logging = os.getenv("JSON_LOGGING", "false").lower() in {"true", "1", "yes"}
    log_file = os.getenv("LOG_FILE")
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_format=json_logging,
        log_file=Path(log_file) if log_file else None,
    )
