"""
Module: inventory_kernel.logging_config
Responsibility: One JSON line per log record for the stock ledger, with the
    recording context of the current movement attached automatically.
Architecture position: Kernel, leaf module.  Imports only exceptions.py at
    runtime so that every layer, db/ included, can log.

Record shape:
    ts, level, logger, message          always
    correlation_id, tenant_id,          while bound by LogContext.bind()
    movement_id, actor_id
    <extra keys>                        UUID and Decimal as strings, ledger
                                        enums as their storage token,
                                        datetimes as ISO 8601
    exc_type, exc_message, traceback    any exception
    exc_code, exc_<field>               InventoryKernelError only

Attributes of infrastructure errors (statement, params, orig) are not
flattened into exc_* keys; only their type and message are recorded.
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "movement_fields",
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
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from inventory_kernel.exceptions import InventoryKernelError

if TYPE_CHECKING:
    from inventory_kernel.domain.stock import StockMovement

_LOGGER_PREFIX = "inventory_kernel"

# ---------------------------------------------------------------------------
# Recording context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "tenant_id", "movement_id", "actor_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"inventory_log_{name}", default=None)
    for name in _CONTEXT_FIELDS
}


class LogContext:
    """
    Context fields attached to every record emitted inside ``bind()``.

    Values are stored as strings; UUIDs may be passed as-is.  Context
    variables keep concurrent recordings on different threads apart.
    """

    @staticmethod
    @contextmanager
    def bind(**fields: object) -> Iterator[None]:
        """Bind non-None fields for the block; previous values come back on exit."""
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")

        tokens = [
            (_context_vars[name], _context_vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @staticmethod
    def current() -> dict[str, str]:
        bound: dict[str, str] = {}
        for name, var in _context_vars.items():
            value = var.get()
            if value is not None:
                bound[name] = value
        return bound

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)


def movement_fields(movement: StockMovement) -> dict[str, Any]:
    """Log extras identifying a movement.  The free-text reason is left out."""
    return {
        "item_id": movement.item_id,
        "location_id": movement.location_id,
        "movement_type": movement.movement_type,
        "quantity": movement.quantity,
        "reference_type": movement.reference_type,
    }


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _normalize(value: Any) -> Any:
    # Ledger enums log as their storage token
    if isinstance(value, Enum):
        return getattr(value, "token", value.value)
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.current())

        for key, value in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = _normalize(value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        if isinstance(exc, InventoryKernelError):
            fields["exc_code"] = exc.code
            for key, value in vars(exc).items():
                if not key.startswith("_") and key != "code":
                    fields[f"exc_{key}"] = _normalize(value)
        return fields


# ---------------------------------------------------------------------------
# Logger factory and setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the inventory_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_installed_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Install the JSON handler on the inventory_kernel logger.

    Idempotent: once a handler is installed, later calls change nothing and
    return the installed handler.  Records do not propagate to the root
    logger, so host applications never see them twice.
    """
    global _installed_handler
    with _lock:
        if _installed_handler is not None:
            return _installed_handler

        h = handler if handler is not None else logging.StreamHandler(sys.stderr)
        h.setFormatter(StructuredFormatter())

        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False
        kernel_logger.addHandler(h)
        _installed_handler = h
        return h


def reset_logging() -> None:
    """Remove the installed handler and restore defaults.  FOR TESTING ONLY."""
    global _installed_handler
    with _lock:
        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        if _installed_handler is not None:
            kernel_logger.removeHandler(_installed_handler)
            _installed_handler = None
        kernel_logger.setLevel(logging.WARNING)
        kernel_logger.propagate = True
