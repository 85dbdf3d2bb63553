"""Console and JSON-file logging, tagged with the run's trace id."""

from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Optional

from .config import AppConfig

TRACE_ID_ENV = "CLIPSCOUT_TRACE_ID"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(trace_id).8s | %(name)s | %(message)s"
# Third-party loggers that are chatty at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "googleapiclient.discovery_cache")
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RunContextFilter(logging.Filter):
    """Stamps every record with the run's trace id and environment."""

    def __init__(self, trace_id: str, environment: str) -> None:
        super().__init__()
        self.trace_id = trace_id
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = self.trace_id
        record.environment = self.environment
        if not hasattr(record, "event"):
            record.event = f"{record.module}.{record.funcName}"
        return True


def configure_logging(config: AppConfig, *, verbose: bool = False, trace_id: Optional[str] = None) -> str:
    """Install console (and optional JSON file) handlers; returns the trace id.

    The trace id comes from ``trace_id``, then ``CLIPSCOUT_TRACE_ID`` (set by
    ``main.py``), then a fresh uuid.
    """
    trace_id = trace_id or os.getenv(TRACE_ID_ENV) or uuid.uuid4().hex
    root = logging.getLogger()
    debug = verbose or config.environment == "development"
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    context_filter = RunContextFilter(trace_id, config.environment)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    console_handler.addFilter(context_filter)
    root.addHandler(console_handler)

    if config.log_path is not None:
        config.log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=str(config.log_path),
            when="midnight",
            backupCount=14,
            utc=True,
            encoding="utf-8",
        )
        file_handler.setFormatter(JsonFormatter())
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return trace_id
