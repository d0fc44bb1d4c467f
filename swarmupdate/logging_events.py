"""Structured logging helpers for update fetch events."""

from __future__ import annotations

import logging
from typing import Any

_FLAT_TYPES = (str, int, float, bool, type(None))


def log_event(logger: Any, event: str, /, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit ``event`` with each keyword attached to the ``LogRecord``.

    Handlers (and tests) read ``record.event`` and the fields directly, so
    values must stay flat: strings, numbers, booleans or ``None``.
    """

    if not isinstance(event, str) or not event.strip():
        raise ValueError("event must be a non-empty string")

    extra: dict[str, Any] = {"event": event}
    for name, value in fields.items():
        if not isinstance(value, _FLAT_TYPES):
            raise TypeError(f"Field '{name}' must be a flat value, got {type(value).__name__}")
        extra[name] = value

    logger.log(level, event, extra=extra)


__all__ = ["log_event"]
