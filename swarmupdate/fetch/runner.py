"""Fetch a signed update package from the first viable swarm candidate."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from pathlib import Path
import threading
from typing import Any, Optional

from swarmupdate.config import UpdateFetchConfig, load_fetch_config
from swarmupdate.core.errors import InvalidLocatorError
from swarmupdate.core.magnet import parse_candidate
from swarmupdate.core.update_header import read_update_version
from swarmupdate.errors import FailureReason, FetchFailure
from swarmupdate.logging import get_logger
from swarmupdate.utils.path_safety import resolve_data_file
from swarmupdate.utils.time import monotonic_s

from .contracts import SwarmHandle, SwarmManager, UpdateCoordinator
from .coordinator import RecordingUpdateCoordinator
from .events import (
    emit_candidate_event,
    emit_outcome_event,
    emit_progress_event,
)
from .models import FetchState, TaskMethod, TaskType
from .timeout import TimeoutSupervisor

logger = get_logger(__name__)

NO_TRANSPORT_MESSAGE = "No tracker, no DHT, no OT"
PROGRESS_LABEL = "Updating"

VersionReader = Callable[[Path], Optional[str]]


class SwarmUpdateRunner:
    """Single attempt fetch of a signed update over a swarm transfer.

    Candidates are tried in order until one swarm is joined. The runner
    then acts as that swarm's listener, enforces the metadata and
    completion deadlines, validates the delivered version and reports to
    the coordinator. Every failure path goes through :meth:`_fail`, which
    runs at most once per attempt.

    Listener callbacks may arrive on engine threads while the deadline
    check runs on the event loop, so shared state is only touched under
    ``self._lock``; collaborators are always called outside of it.
    """

    def __init__(
        self,
        *,
        swarm_manager: SwarmManager,
        candidates: Sequence[str],
        coordinator: UpdateCoordinator | None = None,
        target_version: str,
        config: UpdateFetchConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        version_reader: VersionReader = read_update_version,
        time_source: Callable[[], float] = monotonic_s,
    ) -> None:
        if not target_version:
            raise ValueError("target_version must not be empty")
        self._manager = swarm_manager
        if coordinator is None:
            coordinator = RecordingUpdateCoordinator()
        self._coordinator = coordinator
        self._candidates = tuple(candidates)
        self._target_version = target_version
        self._config = config or load_fetch_config()
        self._version_reader = version_reader
        self._time_source = time_source
        self._lock = threading.Lock()
        self._started = False
        self._running = False
        self._metadata_acquired = False
        self._complete = False
        self._swarm: SwarmHandle | None = None
        self._current_location: str | None = None
        self._state = FetchState.IDLE
        self._failure_reason: str | None = None
        self._started_at: float | None = None
        self._supervisor = TimeoutSupervisor(
            self,
            metadata_timeout_s=self._config.metadata_timeout_s,
            completion_timeout_s=self._config.completion_timeout_s,
            loop=loop,
            time_source=time_source,
        )

    @property
    def candidates(self) -> tuple[str, ...]:
        return self._candidates

    @property
    def coordinator(self) -> UpdateCoordinator:
        return self._coordinator

    @property
    def target_version(self) -> str:
        return self._target_version

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def failure_reason(self) -> str | None:
        return self._failure_reason

    @property
    def swarm(self) -> SwarmHandle | None:
        return self._swarm

    @property
    def supervisor(self) -> TimeoutSupervisor:
        return self._supervisor

    # Task surface

    def is_running(self) -> bool:
        return self._running

    def shutdown(self) -> None:
        """Flag the attempt as no longer running.

        The joined swarm keeps going; callers that need it gone must stop it
        through the swarm manager themselves.
        """

        self._running = False

    def get_type(self) -> TaskType:
        return TaskType.ROUTER_SIGNED

    def get_method(self) -> TaskMethod:
        return TaskMethod.TORRENT

    def get_current_location(self) -> str | None:
        return self._current_location

    def get_id(self) -> str:
        return ""

    def start(self) -> None:
        """Join the first viable candidate swarm and arm the deadlines.

        Must be called from the event loop thread unless the runner was
        built with an explicit ``loop``.
        """

        self._supervisor.bind_loop()
        with self._lock:
            if self._started:
                raise FetchFailure("fetch attempt already started")
            self._started = True
            self._running = True
            self._state = FetchState.SELECTING
            self._started_at = self._time_source()
        self._select_candidate()

    def _select_candidate(self) -> None:
        manager = self._manager
        for locator in self._candidates:
            if not self._running:
                return
            self._current_location = locator
            try:
                location = parse_candidate(locator)
            except InvalidLocatorError as exc:
                logger.error("Invalid update URL %s", locator, exc_info=True)
                emit_candidate_event(logger, location=locator, status="invalid", error=str(exc))
                continue

            if (
                location.announce_url is None
                and not manager.should_use_dht()
                and not manager.should_use_open_trackers()
            ):
                emit_candidate_event(logger, location=locator, status="no_transport")
                self._coordinator.notify_attempt_failed(self, NO_TRANSPORT_MESSAGE, None)
                continue

            swarm = manager.add_magnet(
                location.display_name,
                location.content_id,
                location.announce_url,
                listener=self,
            )
            with self._lock:
                still_running = self._running
                if swarm is not None:
                    self._swarm = swarm
                    if self._state is FetchState.SELECTING:
                        self._state = FetchState.AWAITING_METADATA
            if not still_running:
                # The engine ended the attempt from inside add_magnet.
                logger.info("Fetch attempt ended while joining %s", locator)
                return
            if swarm is None:
                emit_candidate_event(logger, location=locator, status="join_failed")
                continue

            emit_candidate_event(logger, location=locator, status="joined")
            self._coordinator.notify_progress(self, f"Updating from {locator}")
            self._supervisor.arm()
            return

        self._fail(FailureReason.NO_VALID_LOCATIONS)

    # Deadline target

    def is_complete(self) -> bool:
        return self._complete

    def has_metadata(self) -> bool:
        return self._metadata_acquired

    def timed_out(self, reason: FailureReason) -> None:
        self._fail(reason)

    # Failure handling

    def _fail(self, reason: FailureReason | str, swarm: SwarmHandle | None = None) -> bool:
        """Claim the terminal state, clean up and report ``reason`` once."""

        reason_text = reason.value if isinstance(reason, FailureReason) else str(reason)
        with self._lock:
            if not self._running or self._complete:
                return False
            self._running = False
            self._state = FetchState.FAILED
            self._failure_reason = reason_text
            target = self._swarm if self._swarm is not None else swarm
            had_metadata = self._metadata_acquired
        self._supervisor.cancel()

        if target is not None:
            if had_metadata:
                self._discard_transfer(target)
            else:
                self._discard_magnet(target)
        self._coordinator.notify_task_failed(self, reason_text, None)
        logger.error(reason_text)
        emit_outcome_event(
            logger,
            status="failed",
            location=self._current_location,
            duration_s=self._elapsed(),
            reason=reason_text,
        )
        return True

    def _discard_transfer(self, swarm: SwarmHandle) -> None:
        descriptor = swarm.name
        try:
            self._manager.stop_torrent(swarm, force=True)
            self._manager.remove_torrent(descriptor)
        except Exception:
            logger.exception("Failed to stop swarm %s during cleanup", descriptor)
        for file_name in (descriptor, swarm.base_name):
            self._delete_data_file(file_name)

    def _discard_magnet(self, swarm: SwarmHandle) -> None:
        try:
            self._manager.delete_magnet(swarm)
        except Exception:
            logger.exception("Failed to discard pending swarm %s", swarm.name)

    def _delete_data_file(self, file_name: str) -> None:
        try:
            path = resolve_data_file(self._manager.data_dir, file_name)
        except ValueError:
            logger.warning("Refusing to delete %r outside the data directory", file_name)
            return
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Nothing to delete at %s", path)
        except OSError:
            logger.exception("Failed to delete %s", path)

    def _elapsed(self) -> float | None:
        if self._started_at is None:
            return None
        return max(0.0, self._time_source() - self._started_at)

    # Swarm listener

    def got_metadata(self, swarm: SwarmHandle) -> str | None:
        info = swarm.metadata
        if info is None:
            logger.warning("Swarm %s signalled metadata without a description", swarm.name)
            return self._manager.got_metadata(swarm)
        if info.is_multi_file:
            self._fail(FailureReason.MULTI_FILE, swarm)
            return None
        if info.is_private:
            self._fail(FailureReason.PRIVATE, swarm)
            return None
        if info.total_length > self._config.max_artifact_bytes:
            self._fail(FailureReason.TOO_BIG, swarm)
            return None
        with self._lock:
            if self._running and not self._metadata_acquired:
                self._metadata_acquired = True
                self._state = FetchState.TRANSFERRING
        return self._manager.got_metadata(swarm)

    def got_piece(self, swarm: SwarmHandle) -> None:
        if self._metadata_acquired and self._running:
            total = swarm.total_length
            done = total - swarm.remaining_length
            emit_progress_event(logger, location=self._current_location, done=done, total=total)
            self._coordinator.notify_progress(self, PROGRESS_LABEL, done, total)
        self._manager.got_piece(swarm)

    def update_status(self, swarm: SwarmHandle) -> None:
        if swarm.is_stopped() and not self._complete:
            self._fail(FailureReason.STOPPED_BY_USER, swarm)
        self._manager.update_status(swarm)

    def transfer_complete(self, swarm: SwarmHandle) -> None:
        if not self._running:
            self._manager.torrent_complete(swarm)
            return

        artifact = self._artifact_path(swarm)
        version = self._version_reader(artifact) if artifact is not None else None
        if version != self._target_version:
            if self._fail(FailureReason.VERSION_MISMATCH, swarm):
                self._coordinator.notify_complete(
                    self, version or "", artifact or Path(swarm.base_name)
                )
            self._manager.torrent_complete(swarm)
            return

        with self._lock:
            claimed = self._running and not self._complete
            if claimed:
                self._complete = True
                self._running = False
                self._state = FetchState.COMPLETED
        if not claimed:
            self._manager.torrent_complete(swarm)
            return
        self._supervisor.cancel()
        self._coordinator.notify_complete(self, version, artifact)
        self._manager.torrent_complete(swarm)
        emit_outcome_event(
            logger,
            status="completed",
            location=self._current_location,
            duration_s=self._elapsed(),
        )

    def _artifact_path(self, swarm: SwarmHandle) -> Path | None:
        try:
            return resolve_data_file(self._manager.data_dir, swarm.base_name)
        except ValueError:
            logger.error("Swarm %s reported an unusable artifact name", swarm.name)
            return None

    def fatal(self, swarm: SwarmHandle, reason: str) -> None:
        self._fail(reason, swarm)
        self._manager.fatal(swarm, reason)

    def add_message(self, swarm: SwarmHandle, message: str) -> None:
        self._manager.add_message(swarm, message)

    def get_saved_torrent_time(self, swarm: SwarmHandle) -> int:
        return self._manager.get_saved_torrent_time(swarm)

    def get_saved_torrent_bitfield(self, swarm: SwarmHandle) -> Any:
        return self._manager.get_saved_torrent_bitfield(swarm)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__} {self.get_type().value} {self.get_id()} "
            f"{self.get_method().value} {self._current_location}"
        )


__all__ = ["NO_TRANSPORT_MESSAGE", "PROGRESS_LABEL", "SwarmUpdateRunner"]
