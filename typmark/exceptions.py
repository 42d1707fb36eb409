"""Package-specific exception types."""

from __future__ import annotations


class TypmarkError(ValueError):
    """Base class for errors raised by typmark.

    Malformed markup never raises; it is reported through diagnostics. These
    exceptions cover programming errors and the I/O boundary.
    """


class SourceTooLargeError(TypmarkError):
    """Raised when an input file exceeds the configured size limit.

    Args:
        size: Size of the input in bytes.
        limit: Maximum allowed size in bytes.
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        return f"Input is {self.size} bytes, which exceeds the limit of {self.limit} bytes"


class MathRenderError(TypmarkError):
    """Raised by math renderers when a snippet cannot be compiled.

    Args:
        raw: The math source that failed to render.
        reason: Optional human-readable cause.
    """

    def __init__(self, raw: str, reason: str | None = None):
        self.raw = raw
        self.reason = reason
        message = "Failed to render math"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
