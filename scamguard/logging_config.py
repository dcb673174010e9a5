"""
ScamGuard Logging
=================

One call configures the root logger for the API, the CLI or a worker.

Two formats:
    text  ``2026-10-19 12:00:00 INFO     scamguard.scoring.engine | Listing 'L1' scored 0.80``
    json  one object per line, with the scoring context fields attached by
          ``extra={...}`` (user_id, heuristic_id, score, risk_level, duration)

Usage:
    from scamguard.logging_config import setup_logging

    setup_logging(level="DEBUG", json_output=True, log_file="logs/scamguard.log")
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Optional

# Context attributes copied into JSON lines when a log call provides them
EXTRA_FIELDS = ("user_id", "heuristic_id", "duration", "score", "risk_level")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("urllib3", "httpx", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """Serializes each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in EXTRA_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Replace the root logger's handlers.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        json_output: JSON lines instead of text
        log_file: Also write to this file, rotated at max_bytes
        max_bytes: Rotation size
        backup_count: Rotated files kept
    """
    formatter = JSONFormatter() if json_output else logging.Formatter(
        TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
    )

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug("Logging configured: level=%s json=%s file=%s", level, json_output, log_file or "none")
