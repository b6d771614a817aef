"""Structured JSON logging for the payroll kernel."""

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
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from payroll_kernel.exceptions import PayrollKernelError

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "run_id", "company_id", "employee_id", "actor_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"payroll_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """
    Run-scoped fields stamped on every log line.

    Values live in contextvars, so each thread and each asyncio task sees its
    own copy. The batch aggregator runs every employee inside a copied context
    and binds ``employee_id`` there.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set context fields. None values are skipped."""
        unknown = set(fields) - set(_context_vars)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        for name, value in fields.items():
            if value is not None:
                _context_vars[name].set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them.

        Names that are not context fields are ignored.
        """
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in fields.items()
            if value is not None and name in _context_vars
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    """Fallback for values json cannot encode (Decimal, UUID, dates, enums)."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS:
                payload.setdefault(key, val)

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if isinstance(exc, PayrollKernelError):
                payload["exc_code"] = exc.code
                for name, val in exc.details().items():
                    payload[f"exc_{name}"] = val
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "payroll_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the payroll_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the payroll_kernel logger. Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.setLevel(level)
    logger.propagate = False

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)


def reset_logging() -> None:
    """Undo configure_logging(). Used by the test suite."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
