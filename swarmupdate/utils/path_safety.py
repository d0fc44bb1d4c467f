"""Helpers for constraining collaborator supplied names to the data directory."""

from __future__ import annotations

from pathlib import Path
import re

_WINDOWS_DRIVE_PATTERN = re.compile(r"^[a-zA-Z]:[\\/]")


def _normalise_relative(path: str | Path) -> Path:
    candidate = Path(path)
    parts = [part for part in candidate.parts if part not in {"", "."}]
    return Path(*parts) if parts else Path()


def _is_within(candidate: Path, base: Path) -> bool:
    try:
        candidate.relative_to(base)
        return True
    except ValueError:
        return False


def resolve_data_file(data_dir: str | Path, raw: str) -> Path:
    """Resolve the relative name *raw* under *data_dir*.

    Raises ``ValueError`` for empty, absolute or escaping names so that the
    failure cleanup never deletes anything outside the managed directory.
    """

    text = (raw or "").strip()
    if not text:
        raise ValueError("filename must not be empty")
    if text.startswith(("/", "\\")):
        raise ValueError("absolute paths are not allowed")
    if _WINDOWS_DRIVE_PATTERN.match(text):
        raise ValueError("drive-qualified paths are not allowed")

    relative = _normalise_relative(text)
    if not relative.parts:
        raise ValueError("filename must not be empty")
    if any(part == ".." for part in relative.parts):
        raise ValueError("parent directory segments are not allowed")

    root = Path(data_dir).expanduser().resolve(strict=False)
    candidate = (root / relative).resolve(strict=False)
    if candidate == root or not _is_within(candidate, root):
        raise ValueError("path escapes the data directory")
    return candidate


__all__ = ["resolve_data_file"]
