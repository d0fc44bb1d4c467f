"""In-memory update coordinator that records task notifications."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any

from swarmupdate.logging import get_logger
from swarmupdate.logging_events import log_event
from swarmupdate.utils.time import now_utc

logger = get_logger(__name__)


@dataclass(frozen=True)
class CoordinatorEvent:
    """Immutable record of one notification received from a task."""

    timestamp: datetime
    kind: str
    task: Any
    message: str | None = None
    done: int | None = None
    total: int | None = None
    version: str | None = None
    path: Path | None = None
    cause: BaseException | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind,
            "task": repr(self.task),
        }
        for key in ("message", "done", "total", "version"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.path is not None:
            payload["path"] = str(self.path)
        return payload


class RecordingUpdateCoordinator:
    """Keep a bounded history of update task notifications."""

    def __init__(self, max_entries: int = 200) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._entries: deque[CoordinatorEvent] = deque(maxlen=max_entries)
        self._lock = Lock()

    @property
    def events(self) -> tuple[CoordinatorEvent, ...]:
        with self._lock:
            return tuple(self._entries)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: str) -> list[CoordinatorEvent]:
        return [event for event in self.events if event.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _record(self, event: CoordinatorEvent) -> None:
        with self._lock:
            self._entries.append(event)

    def notify_attempt_failed(
        self, task: Any, reason: str, cause: BaseException | None = None
    ) -> None:
        self._record(
            CoordinatorEvent(now_utc(), "attempt_failed", task, message=reason, cause=cause)
        )
        log_event(logger, "update_task.attempt_failed", status="warning", reason=reason)

    def notify_task_failed(
        self, task: Any, reason: str, cause: BaseException | None = None
    ) -> None:
        self._record(CoordinatorEvent(now_utc(), "task_failed", task, message=reason, cause=cause))
        log_event(logger, "update_task.failed", status="failed", reason=reason)

    def notify_progress(
        self,
        task: Any,
        label: str,
        done: int | None = None,
        total: int | None = None,
    ) -> None:
        self._record(
            CoordinatorEvent(now_utc(), "progress", task, message=label, done=done, total=total)
        )

    def notify_complete(self, task: Any, version: str, artifact: Path) -> None:
        self._record(
            CoordinatorEvent(now_utc(), "complete", task, version=version, path=Path(artifact))
        )
        log_event(
            logger,
            "update_task.complete",
            status="complete",
            version=version,
            path=str(artifact),
        )


__all__ = ["CoordinatorEvent", "RecordingUpdateCoordinator"]
