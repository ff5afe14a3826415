"""JSON logging for the store, tagged with the id of the dispatch being applied."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from ..config.settings import MonitoringConfig, get_app_config

_CORRELATION_ID: ContextVar[str] = ContextVar("correlation_id", default="-")
_HANDLER: Optional[logging.Handler] = None

_STANDARD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {"correlation_id"}


class _CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _CORRELATION_ID.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields land under ``"extra"``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: Optional[MonitoringConfig] = None) -> None:
    """Attach the JSON handler to the root logger.

    The handler is installed once. Passing ``config`` again only updates the
    level, and handlers added by other code are left in place.
    """

    global _HANDLER
    if _HANDLER is not None and config is None:
        return
    cfg = config or get_app_config().monitoring
    root = logging.getLogger()
    if _HANDLER is None:
        _HANDLER = logging.StreamHandler(sys.stdout)
        _HANDLER.setFormatter(StructuredFormatter())
        _HANDLER.addFilter(_CorrelationFilter())
        root.addHandler(_HANDLER)
    root.setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    if _HANDLER is None:
        configure_logging()
    return logging.getLogger(name)


def current_correlation_id() -> str:
    return _CORRELATION_ID.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str]) -> Iterator[None]:
    token = _CORRELATION_ID.set(correlation_id or "-")
    try:
        yield
    finally:
        _CORRELATION_ID.reset(token)


__all__ = [
    "StructuredFormatter",
    "configure_logging",
    "correlation_scope",
    "current_correlation_id",
    "get_logger",
]
