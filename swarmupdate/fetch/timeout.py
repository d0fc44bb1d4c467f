"""Two stage deadline timer guarding a single fetch attempt."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import threading
from typing import Protocol

from swarmupdate.errors import FailureReason
from swarmupdate.logging import get_logger
from swarmupdate.utils.time import monotonic_s

from .events import emit_timeout_event

logger = get_logger(__name__)


class TimeoutTarget(Protocol):
    def is_running(self) -> bool: ...

    def is_complete(self) -> bool: ...

    def has_metadata(self) -> bool: ...

    def timed_out(self, reason: FailureReason) -> None: ...


class TimeoutSupervisor:
    """Fire once at the metadata deadline and at most once more at completion.

    The first check fails the attempt when no metadata has arrived yet.
    Otherwise it re-arms itself for the remaining time until the completion
    deadline; that second check fails any attempt which has not completed.
    Both deadlines are measured from :meth:`arm`.
    """

    def __init__(
        self,
        target: TimeoutTarget,
        *,
        metadata_timeout_s: float,
        completion_timeout_s: float,
        loop: asyncio.AbstractEventLoop | None = None,
        time_source: Callable[[], float] = monotonic_s,
    ) -> None:
        if completion_timeout_s < metadata_timeout_s:
            raise ValueError("completion_timeout_s must be >= metadata_timeout_s")
        self._target = target
        self._metadata_timeout = max(0.0, float(metadata_timeout_s))
        self._completion_timeout = max(self._metadata_timeout, float(completion_timeout_s))
        self._loop = loop
        self._time_source = time_source
        self._lock = threading.Lock()
        self._handle: asyncio.TimerHandle | None = None
        self._started_at: float | None = None
        self._fire_count = 0
        self._cancelled = False

    @property
    def armed(self) -> bool:
        return self._started_at is not None and not self._cancelled

    @property
    def started_at(self) -> float | None:
        return self._started_at

    @property
    def fire_count(self) -> int:
        return self._fire_count

    def bind_loop(self) -> asyncio.AbstractEventLoop:
        """Resolve the event loop the checks run on.

        Raises ``RuntimeError`` when no loop was given and none is running.
        """

        with self._lock:
            if self._loop is None:
                self._loop = asyncio.get_running_loop()
            return self._loop

    def arm(self) -> bool:
        """Schedule the metadata check; later calls are ignored."""

        self.bind_loop()
        with self._lock:
            if self._started_at is not None or self._cancelled:
                return False
            self._started_at = self._time_source()
        self._schedule(self._metadata_timeout)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handle, self._handle = self._handle, None
        if handle is not None:
            self._cancel_handle(handle)

    def fire(self) -> None:
        """Run the deadline check for the current stage."""

        with self._lock:
            if self._cancelled or self._started_at is None:
                return
            handle, self._handle = self._handle, None
            self._fire_count += 1
            stage = self._fire_count
            elapsed = self._time_source() - self._started_at
        if handle is not None:
            self._cancel_handle(handle)

        target = self._target
        if target.is_complete() or not target.is_running():
            emit_timeout_event(logger, stage=stage, status="idle", elapsed_s=elapsed)
            return
        if not target.has_metadata():
            emit_timeout_event(logger, stage=stage, status="metadata_expired", elapsed_s=elapsed)
            target.timed_out(FailureReason.METADATA_TIMEOUT)
            return
        if stage >= 2 or elapsed >= self._completion_timeout:
            emit_timeout_event(logger, stage=stage, status="completion_expired", elapsed_s=elapsed)
            target.timed_out(FailureReason.COMPLETION_TIMEOUT)
            return

        remaining = self._completion_timeout - self._metadata_timeout
        emit_timeout_event(
            logger,
            stage=stage,
            status="rescheduled",
            elapsed_s=elapsed,
            reschedule_s=remaining,
        )
        self._schedule(remaining)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _schedule(self, delay: float) -> None:
        loop = self._loop
        if loop is None:  # pragma: no cover - arm() always resolves the loop
            raise RuntimeError("timeout supervisor has no event loop")
        if self._on_loop_thread():
            self._call_later(delay)
        else:
            loop.call_soon_threadsafe(self._call_later, delay)

    def _cancel_handle(self, handle: asyncio.TimerHandle) -> None:
        # Timer handles belong to the loop; engine threads hand the cancel over.
        loop = self._loop
        if loop is None or loop.is_closed() or self._on_loop_thread():
            handle.cancel()
        else:
            loop.call_soon_threadsafe(handle.cancel)

    def _call_later(self, delay: float) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._handle = self._loop.call_later(delay, self.fire)


__all__ = ["TimeoutSupervisor", "TimeoutTarget"]
