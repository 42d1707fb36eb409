from __future__ import annotations

import pytest

from typmark import parse
from typmark.source_map import Position, Range, SourceMap
from typmark.span import Span, SpanError


def test_position_counts_lines_from_zero():
    source_map = SourceMap("a\nb\n")

    assert source_map.position(0) == Position(0, 0)
    assert source_map.position(2) == Position(1, 0)
    assert source_map.position(4) == Position(2, 0)


def test_position_character_is_utf8_byte_column():
    source_map = SourceMap("é a\n")

    # "é" is two bytes in UTF-8
    assert source_map.position(2) == Position(0, 3)


def test_position_clamps_offsets_past_the_end():
    source_map = SourceMap("ab")

    assert source_map.position(100) == Position(0, 2)
    assert source_map.position(-3) == Position(0, 0)


def test_range_to_dict():
    source_map = SourceMap("one\ntwo\n")

    text_range = source_map.range(Span(4, 7))

    assert text_range == Range(Position(1, 0), Position(1, 3))
    assert text_range.to_dict() == {
        "start": {"line": 1, "character": 0},
        "end": {"line": 1, "character": 3},
    }


def test_empty_source_has_a_single_line():
    result = parse("")

    assert result.source_map.line_count() == 1
    assert result.document.blocks == []
    assert result.document.span == Span(0, 0)
    assert result.diagnostics == []


def test_inverted_span_raises_value_error():
    with pytest.raises(SpanError) as excinfo:
        Span(3, 1)

    assert isinstance(excinfo.value, ValueError)
    assert "start 3 is greater than end 1" in str(excinfo.value)


def test_span_helpers():
    span = Span(2, 6)

    assert span.len() == 4
    assert not span.is_empty()
    assert Span(4, 4).is_empty()
    assert span.contains(Span(3, 6))
    assert not span.contains(Span(1, 3))


def test_clamped_span_stays_within_limit():
    assert Span.clamped(-5, 50, 10) == Span(0, 10)
    assert Span.clamped(8, 2, 10) == Span(8, 8)
