"""Configuration utilities for the swarm update fetcher."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any


DEFAULT_MAX_ARTIFACT_BYTES = 30 * 1024 * 1024
DEFAULT_METADATA_TIMEOUT_S = 30 * 60.0
DEFAULT_COMPLETION_TIMEOUT_S = 3 * 60 * 60.0

_RUNTIME_ENV_CACHE: dict[str, str] | None = None


def _parse_env_file(path: Path) -> dict[str, str]:
    """Read ``KEY=value`` lines, skipping blanks and ``#`` comments."""

    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return {}
    values: dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the ``.env`` file under the process environment."""

    path = Path(env_file) if env_file is not None else Path(".env")
    env = _parse_env_file(path) if path.is_file() else {}
    source = os.environ if base_env is None else base_env
    env.update((key, str(value)) for key, value in source.items() if value is not None)
    return env


def get_runtime_env() -> Mapping[str, str]:
    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Pin the runtime environment; ``None`` reloads it on next access."""

    global _RUNTIME_ENV_CACHE
    _RUNTIME_ENV_CACHE = None if runtime_env is None else dict(runtime_env)


def _as_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _at_least(value: Any, *, default: float, minimum: float) -> float:
    try:
        resolved = float(value)
    except (TypeError, ValueError):
        resolved = default
    return max(minimum, resolved)


@dataclass(slots=True, frozen=True)
class UpdateFetchConfig:
    """Limits applied to a single swarm update fetch attempt."""

    max_artifact_bytes: int = DEFAULT_MAX_ARTIFACT_BYTES
    metadata_timeout_s: float = DEFAULT_METADATA_TIMEOUT_S
    completion_timeout_s: float = DEFAULT_COMPLETION_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.max_artifact_bytes <= 0:
            raise ValueError("max_artifact_bytes must be positive")
        if self.metadata_timeout_s < 0:
            raise ValueError("metadata_timeout_s must not be negative")
        if self.completion_timeout_s < self.metadata_timeout_s:
            raise ValueError("completion_timeout_s must be >= metadata_timeout_s")


def load_fetch_config(env: Mapping[str, Any] | None = None) -> UpdateFetchConfig:
    """Return fetch limits resolved from the runtime environment."""

    env = env if env is not None else get_runtime_env()
    max_bytes = _as_int(
        env.get("SWARM_UPDATE_MAX_ARTIFACT_BYTES"),
        default=DEFAULT_MAX_ARTIFACT_BYTES,
    )
    if max_bytes <= 0:
        max_bytes = DEFAULT_MAX_ARTIFACT_BYTES
    metadata_timeout = _at_least(
        env.get("SWARM_UPDATE_METADATA_TIMEOUT_S"),
        default=DEFAULT_METADATA_TIMEOUT_S,
        minimum=0.0,
    )
    completion_timeout = _at_least(
        env.get("SWARM_UPDATE_COMPLETION_TIMEOUT_S"),
        default=DEFAULT_COMPLETION_TIMEOUT_S,
        minimum=metadata_timeout,
    )
    return UpdateFetchConfig(
        max_artifact_bytes=max_bytes,
        metadata_timeout_s=metadata_timeout,
        completion_timeout_s=completion_timeout,
    )


__all__ = [
    "DEFAULT_COMPLETION_TIMEOUT_S",
    "DEFAULT_MAX_ARTIFACT_BYTES",
    "DEFAULT_METADATA_TIMEOUT_S",
    "UpdateFetchConfig",
    "get_runtime_env",
    "load_fetch_config",
    "load_runtime_env",
    "override_runtime_env",
]
