"""
Module: inventory_kernel.logging_config
Responsibility: One JSON object per log line for everything under the
    ``inventory_kernel`` logger namespace, with request-scoped fields
    (correlation, request, actor, order) attached automatically.
Architecture position: Kernel > infrastructure.  Imports nothing from the
    kernel; every other module may import it.

Event names are snake_case verbs (``order_created``, ``stock_adjusted``).
Payload data travels in ``extra``; bound context fields take precedence
over ``extra`` keys of the same name.
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
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

NAMESPACE = "inventory_kernel"

CONTEXT_FIELDS = ("correlation_id", "request_id", "actor_id", "order_id")

_fields: ContextVar[dict[str, str]] = ContextVar("inventory_log_fields", default={})


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def _merge(values: dict[str, str | None]) -> dict[str, str]:
        unknown = set(values) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_fields.get())
        merged.update({k: v for k, v in values.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **values: str | None) -> None:
        """Overwrite the given fields; None leaves a field untouched."""
        _fields.set(cls._merge(values))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_fields.get())

    @classmethod
    def clear(cls) -> None:
        _fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **values: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block."""
        token = _fields.set(cls._merge(values))
        try:
            yield cls
        finally:
            _fields.reset(token)


# Attributes every LogRecord carries; anything else came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return str(value)


def _exception_fields(exc_info) -> dict[str, Any]:
    exc = exc_info[1]
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Kernel errors carry their data as public attributes
    for name, value in vars(exc).items():
        if name != "code" and not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` below the kernel namespace, e.g. ``services.coordinator``."""
    return logging.getLogger(f"{NAMESPACE}.{name}")


_configured = False
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the kernel namespace.

    Only the first call has an effect until ``reset_logging()``.  The
    namespace does not propagate to the root logger, so host applications
    keep their own formatting.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    kernel_logger = logging.getLogger(NAMESPACE)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging()``.  Used by tests."""
    global _configured
    with _configure_lock:
        _configured = False
    kernel_logger = logging.getLogger(NAMESPACE)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
