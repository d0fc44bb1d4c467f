"""Failure taxonomy for swarm update fetch attempts."""

from __future__ import annotations

from enum import Enum


class FailureReason(str, Enum):
    """Terminal reasons reported to the update coordinator.

    The values are the exact strings handed to ``notify_task_failed``.
    """

    NO_VALID_LOCATIONS = "No valid URLs"
    MULTI_FILE = "more than 1 file"
    PRIVATE = "private torrent"
    TOO_BIG = "too big"
    STOPPED_BY_USER = "stopped by user"
    METADATA_TIMEOUT = "Metainfo timeout"
    COMPLETION_TIMEOUT = "Complete timeout"
    VERSION_MISMATCH = "version mismatch"

    @classmethod
    def label_for(cls, reason: str) -> str:
        """Return a bounded metric label for ``reason``."""

        for member in cls:
            if member.value == reason:
                return member.name.lower()
        return "swarm_fatal"


class FetchFailure(RuntimeError):
    """Raised when the fetch runner is driven outside its lifecycle."""


__all__ = ["FailureReason", "FetchFailure"]
