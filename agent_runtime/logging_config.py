"""Structured JSON logging for the agent runtime."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Structured extras passed as logger.info(..., extra={"context": {...}})
        context = getattr(record, "context", None)
        if context is not None:
            payload["context"] = context

        return json.dumps(payload, default=str)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    console: bool = True,
) -> None:
    """
    Configure root logging for the runtime.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
                   Defaults to the LOG_LEVEL env var, then INFO.
        log_file: Rotating log file path. Defaults to logs/app.log.
        console: Also write JSON lines to stdout.
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_path = Path(log_file or DEFAULT_LOG_PATH)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_path),
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        },
    }
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "agent_runtime.logging_config.JSONFormatter"},
            },
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Return the module logger (pass ``__name__``)."""
    return logging.getLogger(name)
