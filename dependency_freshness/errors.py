"""
Exceptions raised by the freshness pipeline.
"""

from __future__ import annotations


class FreshnessError(Exception):
    """Base class for library errors."""


class InvalidRange(FreshnessError, ValueError):
    """A version range string could not be parsed."""

    def __init__(self, range_text: str, reason: str = "") -> None:
        self.range_text = range_text
        self.reason = reason
        message = f"Invalid version range: {range_text!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class RegistryParseError(FreshnessError):
    """A registry document did not match the expected schema."""

    def __init__(self, package: str, detail: str) -> None:
        self.package = package
        self.detail = detail
        super().__init__(f"Malformed metadata for {package}: {detail}")
