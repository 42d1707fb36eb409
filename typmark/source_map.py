"""Mapping from source offsets to line/column positions."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

from .span import Span


@dataclass(frozen=True)
class Position:
    """Zero-based line and UTF-8 byte column.

    Attributes:
        line: Zero-based line index.
        character: Byte offset of the position from the start of its line.
    """

    line: int
    character: int

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    """Pair of positions delimiting a span.

    Attributes:
        start: Position of the span start.
        end: Position of the span end.
    """

    start: Position
    end: Position

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


class SourceMap:
    """Line index over a source string.

    Records the offset where each line starts so offsets and spans can be
    turned into positions. Columns are UTF-8 byte counts within the line.

    Args:
        source: The full source text.

    Examples:
        source_map = SourceMap("a\\nb\\n")
        source_map.position(2)  # Position(line=1, character=0)
    """

    def __init__(self, source: str):
        self.source = source
        self.line_starts = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self.line_starts.append(index + 1)

    def line_count(self) -> int:
        return len(self.line_starts)

    def position(self, offset: int) -> Position:
        """Convert a source offset to a position.

        Args:
            offset: Offset into the source; values past the end are clamped.

        Returns:
            Position: The zero-based line and byte column of `offset`.
        """
        offset = max(0, min(offset, len(self.source)))
        line = bisect_right(self.line_starts, offset) - 1
        line_start = self.line_starts[line]
        character = len(self.source[line_start:offset].encode("utf-8", "surrogatepass"))
        return Position(line=line, character=character)

    def range(self, span: Span) -> Range:
        return Range(start=self.position(span.start), end=self.position(span.end))
