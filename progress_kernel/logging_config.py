"""
Structured JSON logging for the progress kernel.

Every log line is one JSON object:

    {"ts": "...", "level": "INFO", "logger": "progress_kernel.services...",
     "message": "template_updated", "project_id": "...", "affected_count": 3}

Fields come from three places, later ones never overwriting earlier ones:

    1. the record itself (ts, level, logger, message)
    2. LogContext -- request-scoped fields bound by the calling service
    3. ``extra=`` keyword fields passed at the call site

An attached exception adds exc_type, exc_message, the kernel error ``code``
(as exc_code), every public attribute of the exception as ``exc_<name>``
and the formatted traceback.

Usage:
    from progress_kernel.logging_config import LogContext, get_logger

    logger = get_logger("services.template_editing")
    with LogContext.bind(project_id=project_id, component_type="valve"):
        logger.info("template_updated", extra={"affected_count": 3})
"""

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

ROOT_LOGGER_NAME = "progress_kernel"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "project_id", "component_type")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"progress_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Request-scoped log fields, safe across threads and asyncio tasks."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Set the given fields; None leaves a field as it was."""
        for name, value in fields.items():
            if value is not None:
                _context_vars[name].set(str(value))

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
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (_context_vars[name], _context_vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _json_default(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``progress_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def _installed_handler(root: logging.Logger) -> logging.Handler | None:
    for handler in root.handlers:
        if getattr(handler, "_progress_kernel", False):
            return handler
    return None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach the JSON handler to the ``progress_kernel`` logger.

    Only the first call has an effect until reset_logging().  Lines do not
    propagate to the root logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _installed_handler(root) is not None:
        return

    installed = handler or logging.StreamHandler(stream or sys.stderr)
    installed.setFormatter(StructuredFormatter())
    installed._progress_kernel = True
    root.addHandler(installed)
    root.setLevel(level)
    root.propagate = False


def reset_logging() -> None:
    """Drop every handler and return to WARNING.  Tests only."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
