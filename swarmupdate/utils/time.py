"""Clock helpers used by the fetch timers."""

from __future__ import annotations

from datetime import UTC, datetime
import time as _time

__all__ = ["now_utc", "monotonic_s"]


def now_utc() -> datetime:
    """Return the current UTC time with timezone information."""

    return datetime.now(UTC)


def monotonic_s() -> float:
    """Return a monotonic timestamp in seconds."""

    return _time.monotonic()
