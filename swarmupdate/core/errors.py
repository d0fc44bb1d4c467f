"""Domain-specific errors for swarmupdate core modules."""

from __future__ import annotations


class InvalidLocatorError(ValueError):
    """Raised when a candidate locator cannot be parsed."""

    def __init__(self, message: str, *, locator: str | None = None) -> None:
        super().__init__(message)
        self.locator = locator


class InvalidUpdateHeaderError(ValueError):
    """Raised when a signed update file does not carry a readable header."""


__all__ = ["InvalidLocatorError", "InvalidUpdateHeaderError"]
