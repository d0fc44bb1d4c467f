"""Read the declared version from a signed update file header."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Final

from swarmupdate.logging import get_logger

from .errors import InvalidUpdateHeaderError

logger = get_logger(__name__)

SU3_MAGIC: Final[bytes] = b"I2Psu3"
SU3_VERSION_LENGTH_OFFSET: Final[int] = 13
SU3_VERSION_OFFSET: Final[int] = 40
SU3_MIN_VERSION_LENGTH: Final[int] = 16

SUD_SIGNATURE_BYTES: Final[int] = 40
SUD_VERSION_BYTES: Final[int] = 16


def _read_exact(handle: BinaryIO, size: int) -> bytes:
    data = handle.read(size)
    if len(data) != size:
        raise InvalidUpdateHeaderError(f"expected {size} header bytes, got {len(data)}")
    return data


def _decode_version(raw: bytes) -> str:
    text = raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace").strip()
    if not text:
        raise InvalidUpdateHeaderError("update header carries an empty version")
    return text


def _parse_su3(handle: BinaryIO) -> str:
    header = _read_exact(handle, SU3_VERSION_OFFSET)
    if header[6] != 0 or header[7] != 0:
        raise InvalidUpdateHeaderError("unsupported su3 file format version")
    version_length = header[SU3_VERSION_LENGTH_OFFSET]
    if version_length < SU3_MIN_VERSION_LENGTH:
        raise InvalidUpdateHeaderError("su3 version field is too short")
    return _decode_version(_read_exact(handle, version_length))


def _parse_sud(handle: BinaryIO) -> str:
    _read_exact(handle, SUD_SIGNATURE_BYTES)
    return _decode_version(_read_exact(handle, SUD_VERSION_BYTES))


def parse_update_version(path: str | Path) -> str:
    """Return the version declared in *path*'s header or raise.

    Files starting with ``I2Psu3`` are read as su3 (version length at byte
    13, version at byte 40). Anything else is treated as the legacy sud
    layout: a 40 byte signature followed by a 16 byte NUL padded version.
    The signature itself is not checked here.
    """

    with Path(path).open("rb") as handle:
        magic = handle.read(len(SU3_MAGIC))
        handle.seek(0)
        if magic == SU3_MAGIC:
            return _parse_su3(handle)
        return _parse_sud(handle)


def read_update_version(path: str | Path) -> str | None:
    """Return the declared version of *path*, or ``None`` when unreadable."""

    try:
        return parse_update_version(path)
    except FileNotFoundError:
        logger.warning("Update file %s does not exist", path)
    except OSError:
        logger.exception("Failed to read update header from %s", path)
    except InvalidUpdateHeaderError as exc:
        logger.warning("Invalid update header in %s: %s", path, exc)
    return None


__all__ = ["parse_update_version", "read_update_version"]
