"""
Structured logging for the budget kernel and modules.

Every record under the ``budget_kernel`` logger is rendered as one JSON
object per line.  Records carry:

    ts, level, logger, message      always
    correlation_id, budget_id,      when bound in ``LogContext``
    expense_id, actor_id
    <extra keys>                    whatever the call site passed as ``extra=``
    exc_*                           for records logged with ``exc_info``

Messages are snake_case event names (``budget_impact_failed``); the data
lives in the extra keys, never interpolated into the message.
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
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_LOGGER_PREFIX = "budget_kernel"

CONTEXT_FIELDS = ("correlation_id", "budget_id", "expense_id", "actor_id")


# ---------------------------------------------------------------------------
# Request-scoped context
# ---------------------------------------------------------------------------


class LogContext:
    """
    Per-request fields merged into every record.

    Backed by ``contextvars`` so concurrent requests (threads or asyncio
    tasks) each see their own values.
    """

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"budget_log_{name}", default=None) for name in CONTEXT_FIELDS
    }

    @classmethod
    def _var(cls, name: str) -> ContextVar[str | None]:
        try:
            return cls._vars[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set the given fields; None values leave the current value alone."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """``with LogContext.bind(budget_id=...):`` sets fields for the block only."""
        for name in fields:
            cls._var(name)
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, str | None]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar, Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is not None:
                var = LogContext._vars[name]
                self._tokens.append((var, var.set(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# ---------------------------------------------------------------------------
# JSON rendering
# ---------------------------------------------------------------------------

_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}
_ENVELOPE = frozenset({"ts", "level", "logger", "message"})


def _to_json(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """``exc_type``/``exc_message`` plus ``code`` and public attributes of kernel errors."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for key, value in vars(exc).items():
        if not key.startswith("_"):
            fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED and key not in _ENVELOPE
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``budget_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_installed: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``budget_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records do
    not propagate to the root logger, so host frameworks keep their own
    formatting.
    """
    global _installed
    with _lock:
        if _installed is not None:
            return
        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        _installed = handler

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Detach the handler ``configure_logging`` installed. FOR TESTING ONLY."""
    global _installed
    with _lock:
        handler, _installed = _installed, None
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    if handler is not None:
        kernel_logger.removeHandler(handler)
    kernel_logger.setLevel(logging.WARNING)
