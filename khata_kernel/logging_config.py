"""
Structured JSON logging for the khata ledger core.

Every record under the ``khata`` logger is written as one JSON line:
timestamp, level, logger, message, the ledger ids bound through
``LogContext.bind`` and any ``extra`` fields.  Exceptions raised by the
ledger carry their ``code`` and structured attributes into the line.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "khata"

_CONTEXT_FIELDS = ("vendor_id", "party_id", "transaction_id", "actor_id")
_context: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"khata_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """Ledger ids attached to every record logged inside a ``bind`` block."""

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _context.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**ids: Any) -> Iterator[None]:
        """
        Bind ledger ids for the duration of the block.

        Values are stringified, so UUIDs can be passed directly.  None
        values leave the outer binding in place; unknown names are ignored.
        """
        tokens = [
            (_context[name], _context[name].set(str(value)))
            for name, value in ids.items()
            if value is not None and name in _context
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return repr(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            # ValidationError.field, ImmutableRecordError.entity_id, ...
            for k, v in vars(exc).items():
                if not k.startswith("_"):
                    payload[f"exc_{k}"] = v
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the khata namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False


def configure_logging(
    *,
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler (stderr unless one is given) to the ``khata``
    logger.  Only the first call has an effect.
    """
    global _configured
    if _configured:
        return
    _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False
    handler = handler if handler is not None else logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and the configured flag. For tests."""
    global _configured
    _configured = False
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
