"""Half-open source intervals attached to every tree node."""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import TypmarkError


class SpanError(TypmarkError):
    """Raised when a span would end before it starts.

    Args:
        start: Requested start offset.
        end: Requested end offset.
    """

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end
        super().__init__(f"Inverted span: start {start} is greater than end {end}")


@dataclass(frozen=True)
class Span:
    """Half-open interval ``[start, end)`` into the source text.

    Attributes:
        start: Offset of the first character covered by the span.
        end: Offset one past the last character covered by the span.

    Raises:
        SpanError: If `start` is greater than `end`.

    Examples:
        Span(0, 5).len()  # 5
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise SpanError(self.start, self.end)

    def len(self) -> int:
        return self.end - self.start

    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, other: Span) -> bool:
        """Return True when `other` lies entirely inside this span."""
        return self.start <= other.start and other.end <= self.end

    @classmethod
    def clamped(cls, start: int, end: int, limit: int) -> Span:
        """Build a span with both ends clamped into ``[0, limit]`` and ``end >= start``."""
        start = max(0, min(start, limit))
        end = max(start, min(end, limit))
        return cls(start, end)
