from pathlib import Path

import pytest

from swarmupdate.core.errors import InvalidUpdateHeaderError
from swarmupdate.core.update_header import parse_update_version, read_update_version


def _su3_bytes(version: str, *, version_length: int = 16) -> bytes:
    header = bytearray(40)
    header[0:6] = b"I2Psu3"
    header[13] = version_length
    encoded = version.encode("utf-8").ljust(version_length, b"\x00")
    return bytes(header) + encoded + b"signer@example.org" + b"\x00" * 64


def _sud_bytes(version: str) -> bytes:
    return b"\x01" * 40 + version.encode("utf-8").ljust(16, b"\x00") + b"PK\x03\x04"


def test_reads_su3_version(tmp_path: Path) -> None:
    target = tmp_path / "i2pupdate.su3"
    target.write_bytes(_su3_bytes("0.9.60", version_length=24))

    assert parse_update_version(target) == "0.9.60"
    assert read_update_version(target) == "0.9.60"


def test_reads_legacy_sud_version(tmp_path: Path) -> None:
    target = tmp_path / "i2pupdate.sud"
    target.write_bytes(_sud_bytes("0.7.12"))

    assert read_update_version(target) == "0.7.12"


def test_short_su3_version_field_is_rejected(tmp_path: Path) -> None:
    target = tmp_path / "broken.su3"
    target.write_bytes(_su3_bytes("1", version_length=8))

    with pytest.raises(InvalidUpdateHeaderError):
        parse_update_version(target)
    assert read_update_version(target) is None


def test_truncated_or_missing_files_yield_none(tmp_path: Path) -> None:
    truncated = tmp_path / "short.sud"
    truncated.write_bytes(b"\x00" * 20)

    assert read_update_version(truncated) is None
    assert read_update_version(tmp_path / "missing.su3") is None


def test_empty_version_is_invalid(tmp_path: Path) -> None:
    target = tmp_path / "empty.sud"
    target.write_bytes(_sud_bytes(""))

    assert read_update_version(target) is None
