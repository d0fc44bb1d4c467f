"""Protocols for the collaborators of the swarm update runner."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from .models import ArtifactMetadata


class SwarmHandle(Protocol):
    """One joined swarm as exposed by the transfer engine."""

    @property
    def name(self) -> str:
        """File name of the torrent descriptor inside the data directory."""

    @property
    def base_name(self) -> str:
        """File name of the downloaded artifact inside the data directory."""

    @property
    def metadata(self) -> ArtifactMetadata | None: ...

    @property
    def total_length(self) -> int: ...

    @property
    def remaining_length(self) -> int: ...

    def is_stopped(self) -> bool: ...


class SwarmListener(Protocol):
    """Callbacks delivered by the transfer engine for one swarm."""

    def got_metadata(self, swarm: SwarmHandle) -> str | None: ...

    def got_piece(self, swarm: SwarmHandle) -> None: ...

    def update_status(self, swarm: SwarmHandle) -> None: ...

    def transfer_complete(self, swarm: SwarmHandle) -> None: ...

    def fatal(self, swarm: SwarmHandle, reason: str) -> None: ...

    def add_message(self, swarm: SwarmHandle, message: str) -> None: ...

    def get_saved_torrent_time(self, swarm: SwarmHandle) -> int: ...

    def get_saved_torrent_bitfield(self, swarm: SwarmHandle) -> Any: ...


class SwarmManager(Protocol):
    """Transfer engine facade that owns swarms and their on-disk state."""

    @property
    def data_dir(self) -> Path: ...

    def should_use_dht(self) -> bool: ...

    def should_use_open_trackers(self) -> bool: ...

    def add_magnet(
        self,
        name: str,
        content_id: bytes,
        announce_url: str | None,
        *,
        listener: SwarmListener,
    ) -> SwarmHandle | None:
        """Join (or create) the swarm for *content_id*; ``None`` on failure."""

    def stop_torrent(self, swarm: SwarmHandle, *, force: bool) -> None: ...

    def remove_torrent(self, name: str) -> None: ...

    def delete_magnet(self, swarm: SwarmHandle) -> None: ...

    # Default listener behaviour the runner forwards to.
    def got_metadata(self, swarm: SwarmHandle) -> str | None: ...

    def got_piece(self, swarm: SwarmHandle) -> None: ...

    def update_status(self, swarm: SwarmHandle) -> None: ...

    def torrent_complete(self, swarm: SwarmHandle) -> None: ...

    def fatal(self, swarm: SwarmHandle, reason: str) -> None: ...

    def add_message(self, swarm: SwarmHandle, message: str) -> None: ...

    def get_saved_torrent_time(self, swarm: SwarmHandle) -> int: ...

    def get_saved_torrent_bitfield(self, swarm: SwarmHandle) -> Any: ...


class UpdateCoordinator(Protocol):
    """Service that aggregates update tasks and surfaces their status."""

    def notify_attempt_failed(
        self, task: Any, reason: str, cause: BaseException | None = None
    ) -> None: ...

    def notify_task_failed(
        self, task: Any, reason: str, cause: BaseException | None = None
    ) -> None: ...

    def notify_progress(
        self,
        task: Any,
        label: str,
        done: int | None = None,
        total: int | None = None,
    ) -> None: ...

    def notify_complete(self, task: Any, version: str, artifact: Path) -> None: ...


__all__ = ["SwarmHandle", "SwarmListener", "SwarmManager", "UpdateCoordinator"]
