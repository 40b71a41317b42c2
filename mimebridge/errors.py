from __future__ import annotations


class MimeBridgeError(Exception):
    """Base error type for application-specific exceptions."""

    def __init__(self, message: str, *, stage: str, field: str | None = None):
        super().__init__(message)
        self.stage = stage
        self.field = field


class InvalidArgumentError(MimeBridgeError, ValueError):
    """A required input was missing."""


class MimeFormatError(MimeBridgeError, ValueError):
    """A content-type, content-disposition or address string did not parse."""

    def __init__(self, message: str, *, stage: str, field: str | None = None, value: str | None = None):
        super().__init__(message, stage=stage, field=field)
        self.value = value


class ContentTooLargeError(MimeBridgeError):
    """A content stream exceeded the configured copy limit."""


class MessageSpecError(MimeBridgeError):
    """A message description file could not be loaded."""
