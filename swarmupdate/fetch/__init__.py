"""Single attempt swarm fetch of signed update packages."""

from .contracts import SwarmHandle, SwarmListener, SwarmManager, UpdateCoordinator
from .coordinator import CoordinatorEvent, RecordingUpdateCoordinator
from .models import ArtifactMetadata, FetchState, TaskMethod, TaskType
from .runner import NO_TRANSPORT_MESSAGE, PROGRESS_LABEL, SwarmUpdateRunner
from .timeout import TimeoutSupervisor

__all__ = [
    "ArtifactMetadata",
    "CoordinatorEvent",
    "FetchState",
    "NO_TRANSPORT_MESSAGE",
    "PROGRESS_LABEL",
    "RecordingUpdateCoordinator",
    "SwarmHandle",
    "SwarmListener",
    "SwarmManager",
    "SwarmUpdateRunner",
    "TaskMethod",
    "TaskType",
    "TimeoutSupervisor",
    "UpdateCoordinator",
]
