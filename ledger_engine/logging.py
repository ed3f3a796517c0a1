"""Structured logging configuration for ledger-engine."""

import json
import logging
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

AUDIT_LOGGER_NAME = "ledger_engine.audit"

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
) -> None:
    """Configure logging for ledger-engine.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json". Both render audit fields; the
        standard format appends them as ``key=value`` pairs.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = LedgerFormatter(fmt=STANDARD_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("ledger_engine").setLevel(log_level)

    # Reduce noise from external libraries
    logging.getLogger("confluent_kafka").setLevel(logging.WARNING)
    logging.getLogger("psycopg").setLevel(logging.WARNING)
    logging.getLogger("faker").setLevel(logging.WARNING)


def audit_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Audit payload carried by ``record``; empty for ordinary lines."""
    action = getattr(record, "audit_action", None)
    if action is None:
        return {}
    return {
        "action": action,
        "actor_id": getattr(record, "actor_id", None),
        **getattr(record, "audit_fields", {}),
    }


def _json_default(value: Any) -> str:
    # Money stays exact; never through float
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class LedgerFormatter(logging.Formatter):
    """Plain-text formatter that appends audit fields to the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = audit_fields(record)
        if fields:
            pairs = " ".join(f"{key}={_json_default(value)}" for key, value in fields.items())
            line = f"{line} | {pairs}"
        return line


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Structured fields passed as ``extra={"extra": {...}}`` are merged at the
    top level. Audit lines get their payload under ``audit``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra"):
            log_data.update(record.extra)

        fields = audit_fields(record)
        if fields:
            log_data["audit"] = fields

        return json.dumps(log_data, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Parameters
    ----------
    name : str
        Logger name (usually __name__).

    Returns
    -------
    logging.Logger
        Configured logger.
    """
    return logging.getLogger(name)


def audit(action: str, actor_id: str, **fields: Any) -> None:
    """Write an audit line for an operator action.

    Parameters
    ----------
    action : str
        Action name, e.g. ``admin_adjust``.
    actor_id : str
        Identity of the operator performing the action.
    **fields : Any
        Additional structured fields (account id, amounts, reason).
    """
    logging.getLogger(AUDIT_LOGGER_NAME).info(
        "%s by %s",
        action,
        actor_id,
        extra={"audit_action": action, "actor_id": actor_id, "audit_fields": fields},
    )
