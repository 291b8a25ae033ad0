"""Structured Logging — JSON and key=value formatters for ledger and store events.

Invariants:
    - Every line carries event time, level, logger name, and message
    - Ledger context (LEDGER_FIELDS) is surfaced when present and omitted otherwise
    - Retry events carry attempt, delay_ms, and retryable so a conflict storm
      can be read off the log without a debugger
    - setup_logging() is idempotent: lifespan restarts replace our handler
      instead of stacking a second one

Design Decisions:
    - stdlib logging with our own formatters: no extra dependency for two formats
    - Timestamp from record.created: the time of the event, not of formatting
"""

import json
import logging
from datetime import datetime, timezone

LEDGER_FIELDS = (
    "operation", "item_id", "partition_id", "error_code",
    "attempt", "delay_ms", "retryable", "path",
)

_HANDLER_MARK = "_taskboard_handler"


def ledger_fields(record: logging.LogRecord) -> dict:
    """Ledger context attached through `extra=`, in LEDGER_FIELDS order."""
    return {
        key: record.__dict__[key]
        for key in LEDGER_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for production log pipelines."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **ledger_fields(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human-readable lines with ledger context appended as key=value pairs."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(f"{k}={v}" for k, v in ledger_fields(record).items())
        return f"{line} [{context}]" if context else line


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the Taskboard handler on the root logger (replacing a prior one)."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, _HANDLER_MARK, False):
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else KeyValueFormatter())
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # statement echo only when asked for explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return handler
