"""Parse candidate update locators into swarm join parameters."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
import re
from typing import Final
from urllib.parse import parse_qs, urlsplit

from .errors import InvalidLocatorError

_MAGNET_PREFIX: Final[str] = "magnet:"
_MAGGOT_PREFIX: Final[str] = "maggot://"
_BTIH_PREFIX: Final[str] = "urn:btih:"
_HEX_HASH = re.compile(r"^[0-9a-fA-F]{40}$")
_BASE32_HASH = re.compile(r"^[A-Za-z2-7]{32}$")


@dataclass(slots=True, frozen=True)
class CandidateLocation:
    """Swarm join parameters derived from one candidate locator."""

    display_name: str
    content_id: bytes
    announce_url: str | None = None

    @property
    def info_hash_hex(self) -> str:
        return self.content_id.hex()


def _decode_info_hash(raw: str, *, locator: str) -> bytes:
    value = raw.strip()
    if _HEX_HASH.match(value):
        return bytes.fromhex(value)
    if _BASE32_HASH.match(value):
        try:
            return base64.b32decode(value.upper())
        except binascii.Error as exc:
            raise InvalidLocatorError("invalid base32 info hash", locator=locator) from exc
    raise InvalidLocatorError("info hash must be 40 hex or 32 base32 characters", locator=locator)


def _default_name(content_id: bytes) -> str:
    return f"Magnet {content_id.hex()}"


def _first(params: dict[str, list[str]], key: str) -> str | None:
    for value in params.get(key, ()):
        text = value.strip()
        if text:
            return text
    return None


def _parse_magnet(locator: str) -> CandidateLocation:
    query = urlsplit(locator).query
    if not query and "?" in locator:
        query = locator.split("?", 1)[1]
    params = parse_qs(query, keep_blank_values=False)

    content_id: bytes | None = None
    for topic in params.get("xt", ()):
        if topic.lower().startswith(_BTIH_PREFIX):
            content_id = _decode_info_hash(topic[len(_BTIH_PREFIX) :], locator=locator)
            break
    if content_id is None:
        raise InvalidLocatorError("magnet link has no btih exact topic", locator=locator)

    name = _first(params, "dn") or _default_name(content_id)
    return CandidateLocation(
        display_name=name,
        content_id=content_id,
        announce_url=_first(params, "tr"),
    )


def _parse_maggot(locator: str) -> CandidateLocation:
    remainder = locator[len(_MAGGOT_PREFIX) :]
    info_hash = remainder.split(":", 1)[0].split("/", 1)[0]
    content_id = _decode_info_hash(info_hash, locator=locator)
    return CandidateLocation(display_name=_default_name(content_id), content_id=content_id)


def parse_candidate(locator: str | None) -> CandidateLocation:
    """Parse a candidate locator into a :class:`CandidateLocation`.

    Supported forms are ``magnet:?xt=urn:btih:<hash>&dn=<name>&tr=<announce>``
    (hex or base32 hash, first ``dn`` and ``tr`` win), the legacy
    ``maggot://<hash>[:<id>]`` form and a bare 40 character hex info hash.
    Raises :class:`InvalidLocatorError` for anything else.
    """

    if locator is None:
        raise InvalidLocatorError("locator must not be empty")
    candidate = str(locator).strip()
    if not candidate:
        raise InvalidLocatorError("locator must not be empty", locator=candidate)

    lowered = candidate.lower()
    if lowered.startswith(_MAGNET_PREFIX):
        return _parse_magnet(candidate)
    if lowered.startswith(_MAGGOT_PREFIX):
        return _parse_maggot(candidate)
    if _HEX_HASH.match(candidate):
        content_id = bytes.fromhex(candidate)
        return CandidateLocation(display_name=_default_name(content_id), content_id=content_id)
    raise InvalidLocatorError("unsupported locator scheme", locator=candidate)


__all__ = ["CandidateLocation", "parse_candidate"]
