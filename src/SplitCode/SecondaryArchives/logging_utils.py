"""Structured logging helpers shared across secondary archive components."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .settings import LoggingSettings

__all__ = ["LOGGER_NAME", "JSONFormatter", "get_logger", "setup_logging"]

LOGGER_NAME = "SplitCode.SecondaryArchives"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record, extra fields included."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "stage": getattr(record, "stage", None),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key in payload:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    settings: Optional[LoggingSettings] = None,
    *,
    log_dir: Optional[Path] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the package logger with a console handler and optional JSONL file."""

    settings = settings or LoggingSettings()
    resolved_dir = log_dir or settings.log_dir

    logger = get_logger()
    logger.setLevel(settings.level_int())

    for handler in list(logger.handlers):
        if getattr(handler, "_splitcode_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler) and not isinstance(
                handler, logging.FileHandler
            ):
                continue
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if settings.emit_json_logs:
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._splitcode_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if resolved_dir is not None:
        resolved_dir = Path(resolved_dir)
        resolved_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            resolved_dir / f"secondary-archives-{today}.jsonl",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._splitcode_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
