"""Data models and enums for swarm update fetch attempts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TaskType(str, Enum):
    """Kind of update delivered by a fetch task."""

    ROUTER_SIGNED = "router_signed"


class TaskMethod(str, Enum):
    """Transport used by a fetch task."""

    TORRENT = "torrent"


class FetchState(str, Enum):
    """Lifecycle states for a single fetch attempt."""

    IDLE = "idle"
    SELECTING = "selecting"
    AWAITING_METADATA = "awaiting_metadata"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ArtifactMetadata:
    """Structural description of a swarm artifact, known before its payload.

    ``files`` is ``None`` for a single-file artifact; any tuple (even one
    with a single entry) means the artifact was published as a directory.
    """

    name: str
    total_length: int
    files: tuple[str, ...] | None = None
    is_private: bool = False

    @property
    def is_multi_file(self) -> bool:
        return self.files is not None


__all__ = ["ArtifactMetadata", "FetchState", "TaskMethod", "TaskType"]
