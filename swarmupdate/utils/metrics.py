"""Prometheus metric families recorded by swarm update fetches."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Final

from prometheus_client import CollectorRegistry, Counter, Histogram

# Fetches run from seconds up to the three hour completion deadline.
DURATION_BUCKETS: Final[tuple[float, ...]] = (
    1.0,
    10.0,
    60.0,
    300.0,
    900.0,
    1800.0,
    3600.0,
    10800.0,
)


@dataclass(slots=True, frozen=True)
class FetchMetrics:
    registry: CollectorRegistry
    candidates: Counter
    outcomes: Counter
    duration: Histogram


def _build() -> FetchMetrics:
    registry = CollectorRegistry()
    return FetchMetrics(
        registry=registry,
        candidates=Counter(
            "swarm_update_candidates",
            "Candidate locations evaluated by swarm update fetches.",
            labelnames=("status",),
            registry=registry,
        ),
        outcomes=Counter(
            "swarm_update_outcomes",
            "Terminal outcomes of swarm update fetches.",
            labelnames=("status", "reason"),
            registry=registry,
        ),
        duration=Histogram(
            "swarm_update_duration_seconds",
            "Wall clock duration of swarm update fetches.",
            labelnames=("status",),
            buckets=DURATION_BUCKETS,
            registry=registry,
        ),
    )


_lock = RLock()
_current: FetchMetrics = _build()


def fetch_metrics() -> FetchMetrics:
    with _lock:
        return _current


def get_registry() -> CollectorRegistry:
    return fetch_metrics().registry


def reset_registry() -> None:
    """Replace every fetch metric with a fresh, empty registry (used in tests)."""

    global _current
    with _lock:
        _current = _build()


__all__ = [
    "DURATION_BUCKETS",
    "FetchMetrics",
    "fetch_metrics",
    "get_registry",
    "reset_registry",
]
