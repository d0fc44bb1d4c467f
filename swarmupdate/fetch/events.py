"""Structured logging and metrics helpers for fetch attempts."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from swarmupdate.errors import FailureReason
from swarmupdate.logging import get_logger
from swarmupdate.logging_events import log_event
from swarmupdate.utils import metrics

_metrics_logger = get_logger("swarmupdate.fetch.metrics")


def emit_candidate_event(
    logger: Any,
    *,
    location: str,
    status: str,
    error: str | None = None,
) -> None:
    payload: dict[str, Any] = {"location": location, "status": status}
    if error:
        payload["error"] = error
    level = logging.INFO if status == "joined" else logging.WARNING
    log_event(logger, "update_fetch.candidate", level=level, **payload)
    _observe(lambda: metrics.fetch_metrics().candidates.labels(status=status).inc())


def emit_timeout_event(
    logger: Any,
    *,
    stage: int,
    status: str,
    elapsed_s: float,
    reschedule_s: float | None = None,
) -> None:
    payload: dict[str, Any] = {
        "stage": stage,
        "status": status,
        "elapsed_s": round(elapsed_s, 3),
    }
    if reschedule_s is not None:
        payload["reschedule_s"] = round(reschedule_s, 3)
    log_event(logger, "update_fetch.timeout", **payload)


def emit_progress_event(logger: Any, *, location: str | None, done: int, total: int) -> None:
    log_event(
        logger,
        "update_fetch.progress",
        level=logging.DEBUG,
        location=location,
        done=done,
        total=total,
    )


def emit_outcome_event(
    logger: Any,
    *,
    status: str,
    location: str | None,
    duration_s: float | None,
    reason: str | None = None,
) -> None:
    payload: dict[str, Any] = {"status": status, "location": location}
    if duration_s is not None:
        payload["duration_s"] = round(duration_s, 3)
    if reason:
        payload["reason"] = reason
    level = logging.INFO if status == "completed" else logging.ERROR
    log_event(logger, "update_fetch.outcome", level=level, **payload)

    reason_label = FailureReason.label_for(reason) if reason else "none"
    _observe(
        lambda: metrics.fetch_metrics().outcomes.labels(status=status, reason=reason_label).inc()
    )
    if duration_s is not None:
        _observe(
            lambda: metrics.fetch_metrics().duration.labels(status=status).observe(duration_s)
        )


def _observe(update: Callable[[], None]) -> None:
    try:
        update()
    except Exception:  # pragma: no cover - defensive metrics hook
        _metrics_logger.warning(
            "Failed to record fetch metric",
            extra={"event": "update_fetch.metrics.failed", "status": "error"},
            exc_info=True,
        )


__all__ = [
    "emit_candidate_event",
    "emit_outcome_event",
    "emit_progress_event",
    "emit_timeout_event",
]
