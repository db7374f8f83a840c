"""
Ledger Logging

One JSON object per line for every ledger, storage and seeding event, or
plain text lines for interactive use. Records carry the account id and the
action name as separate fields so log processors can filter on them.
Credential material never reaches a record: callers do not pass it, and
any ``extra`` key naming it is masked by the formatter.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Record attributes copied into the JSON document when set
STRUCTURED_FIELDS = ("account_id", "action", "resource", "extra")

MASKED_KEYS = frozenset({"pin", "new_pin", "current_pin", "salt", "pin_hash"})
MASK = "***"


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if isinstance(log_entry.get("extra"), dict):
            log_entry["extra"] = {
                key: MASK if key in MASKED_KEYS else value
                for key, value in log_entry["extra"].items()
            }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "atm_ledger",
                  log_format: str = "json") -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the root package logger
        log_format: "json" for structured output, "text" for plain lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format.lower() == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger


def get_logger(name: str = "atm_ledger") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               account_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, extra: Optional[dict] = None):
    """
    Emit a ledger event with its structured fields.

    Args:
        logger: Logger instance
        level: Level name (info, warning, error, ...)
        message: Human readable summary
        account_id: Account the event applies to
        action: Ledger operation name, e.g. "deposit"
        resource: Snapshot location or other target
        extra: Amounts, balances, error codes
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(
        logger.name, levelno, __name__, 0, message, (), None
    )
    fields = {"account_id": account_id, "action": action,
              "resource": resource, "extra": extra}
    for name, value in fields.items():
        if value:
            setattr(record, name, value)

    logger.handle(record)
