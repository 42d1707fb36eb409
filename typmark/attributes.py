"""Attribute lists, code-line metadata and box style validation."""

from __future__ import annotations

import string

from .diagnostics import (
    E_ATTR_SYNTAX,
    E_CODE_CONFLICT,
    W_BOX_STYLE_INVALID,
    W_CODE_RANGE_OOB,
    DiagnosticSink,
)
from .labels import is_valid_label
from .models import AttrItem, AttrList, AttrValue, CodeMeta, Label, LineLabel, LineRange
from .span import Span

BORDER_STYLES = frozenset({"solid", "dashed", "dotted", "double", "none"})
COLOR_KEYS = frozenset({"bg", "title-bg", "border-color"})


def _tokenize(inner: str) -> list[tuple[int, int]]:
    """Split on whitespace outside double quotes; returns (start, end) pairs."""
    tokens = []
    in_quotes = False
    token_start = None
    for idx, char in enumerate(inner):
        if char == '"':
            in_quotes = not in_quotes
        if char.isspace() and not in_quotes:
            if token_start is not None:
                tokens.append((token_start, idx))
                token_start = None
        elif token_start is None:
            token_start = idx
    if token_start is not None:
        tokens.append((token_start, len(inner)))
    return tokens


def parse_attr_list(text: str, base_offset: int, sink: DiagnosticSink) -> AttrList:
    """Parse ``{#label key=value key="quoted value"}``.

    Malformed items are reported as ``E_ATTR_SYNTAX`` and skipped; the rest of
    the list is still returned.

    Args:
        text: The attribute list, starting at its opening brace.
        base_offset: Source offset of the opening brace.
        sink: Receives diagnostics.

    Returns:
        AttrList: The parsed label and items, with `span` covering `text`.

    Examples:
        parse_attr_list('{#fig width="50 %"}', 0, sink).label.name  # "fig"
    """
    span = sink.span(base_offset, base_offset + len(text))
    attrs = AttrList(span=span)
    trimmed = text.strip()
    if len(trimmed) < 2 or not trimmed.startswith("{") or not trimmed.endswith("}"):
        sink.error(span, E_ATTR_SYNTAX, "invalid attribute list")
        return attrs

    inner = trimmed[1:-1]
    inner_offset = base_offset + 1
    for start, end in _tokenize(inner):
        token = inner[start:end]
        token_span = sink.span(inner_offset + start, inner_offset + end)
        if token.startswith("#"):
            name = token[1:]
            if attrs.label is not None:
                sink.error(token_span, E_ATTR_SYNTAX, "duplicate label")
            elif not is_valid_label(name):
                sink.error(token_span, E_ATTR_SYNTAX, "invalid label syntax")
            else:
                attrs.label = Label(name, sink.span(token_span.start + 1, token_span.end))
            continue

        key, sep, value = token.partition("=")
        if not key or not sep:
            sink.error(token_span, E_ATTR_SYNTAX, "invalid attribute item")
            continue
        value_start = inner_offset + start + len(key) + 1
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            attr_value = AttrValue(
                raw=value[1:-1],
                span=sink.span(value_start + 1, inner_offset + end - 1),
                quoted=True,
            )
        else:
            attr_value = AttrValue(raw=value, span=sink.span(value_start, inner_offset + end))
        attrs.items.append(AttrItem(key=key, value=attr_value))
    return attrs


def split_fence_info(
    info: str, line_text: str, line_start: int, sink: DiagnosticSink
) -> tuple[str | None, AttrList]:
    """Split a fence info string into a language and a trailing attribute list."""
    brace = info.find("{")
    if brace < 0:
        return info or None, AttrList()
    lang = info[:brace].strip() or None
    open_idx = line_text.find("{")
    close_idx = line_text.rfind("}")
    if close_idx < 0:
        close_idx = len(line_text) - 1
    attrs = parse_attr_list(line_text[open_idx : close_idx + 1], line_start + open_idx, sink)
    return lang, attrs


def count_lines(text: str) -> int:
    if not text:
        return 0
    return text.count("\n") + 1


def _parse_line_number(text: str) -> int | None:
    text = text.strip()
    if not text or not all(char in string.digits for char in text):
        return None
    return int(text)


def _parse_line_ranges(
    item: AttrItem, max_lines: int, allow_labels: bool, sink: DiagnosticSink
) -> tuple[list[LineRange], list[LineLabel], bool]:
    ranges: list[LineRange] = []
    labels: list[LineLabel] = []
    out_of_bounds = False
    span = item.value.span

    for entry in item.value.raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" in entry:
            if not allow_labels:
                sink.error(span, E_ATTR_SYNTAX, "unexpected label in code range")
                continue
            line_part, _, label_part = entry.partition(":")
            line = _parse_line_number(line_part)
            if line is None:
                sink.error(span, E_ATTR_SYNTAX, "invalid line range")
            elif line == 0:
                sink.error(span, E_ATTR_SYNTAX, "invalid line number")
            elif line > max_lines:
                out_of_bounds = True
            elif not is_valid_label(label_part):
                sink.error(span, E_ATTR_SYNTAX, "invalid label syntax")
            else:
                ranges.append(LineRange(line, line))
                labels.append(LineLabel(line, Label(label_part, span)))
            continue

        if "-" in entry:
            first, _, last = entry.partition("-")
            start = _parse_line_number(first)
            end = _parse_line_number(last)
            if start is None or end is None or start == 0 or end == 0 or end < start:
                sink.error(span, E_ATTR_SYNTAX, "invalid line range")
            elif start > max_lines or end > max_lines:
                out_of_bounds = True
            else:
                ranges.append(LineRange(start, end))
            continue

        line = _parse_line_number(entry)
        if line is None:
            sink.error(span, E_ATTR_SYNTAX, "invalid line range")
        elif line == 0:
            sink.error(span, E_ATTR_SYNTAX, "invalid line number")
        elif line > max_lines:
            out_of_bounds = True
        else:
            ranges.append(LineRange(line, line))
    return ranges, labels, out_of_bounds


def _overlaps(left: list[LineRange], right: list[LineRange]) -> bool:
    return any(a.start <= b.end and b.start <= a.end for a in left for b in right)


def parse_code_meta(
    attrs: AttrList, code_text: str, fallback_span: Span, sink: DiagnosticSink
) -> CodeMeta:
    """Read ``hl``, ``diff_add`` and ``diff_del`` from a code block's attributes.

    Entries are ``N``, ``N-M`` or (``hl`` only) ``N:label``, separated by
    commas. Out-of-range entries are dropped with ``W_CODE_RANGE_OOB``;
    overlapping sets raise ``E_CODE_CONFLICT``.

    Args:
        attrs: Attribute list from the fence info string.
        code_text: Code payload, used to count lines.
        fallback_span: Span reported for conflicts when `attrs` has none.
        sink: Receives diagnostics.

    Returns:
        CodeMeta: The validated line annotations.
    """
    total_lines = count_lines(code_text)
    meta = CodeMeta()
    for item in attrs.items:
        if item.key == "hl":
            meta.hl, meta.line_labels, oob = _parse_line_ranges(item, total_lines, True, sink)
        elif item.key == "diff_add":
            meta.diff_add, _, oob = _parse_line_ranges(item, total_lines, False, sink)
        elif item.key == "diff_del":
            meta.diff_del, _, oob = _parse_line_ranges(item, total_lines, False, sink)
        else:
            continue
        if oob:
            sink.warning(item.value.span, W_CODE_RANGE_OOB, "code line range out of bounds")

    if (
        _overlaps(meta.hl, meta.diff_add)
        or _overlaps(meta.hl, meta.diff_del)
        or _overlaps(meta.diff_add, meta.diff_del)
    ):
        sink.error(attrs.span or fallback_span, E_CODE_CONFLICT, "code line meta conflicts")
    return meta


def is_hex_color(value: str) -> bool:
    value = value.strip()
    if not value.startswith("#"):
        return False
    digits = value[1:]
    return len(digits) in (3, 6) and all(char in string.hexdigits for char in digits)


def is_border_width(value: str) -> bool:
    value = value.strip()
    digits = value.removesuffix("px")
    if not digits or not all(char in string.digits for char in digits):
        return False
    return int(digits) > 0


def validate_box_styles(attrs: AttrList, sink: DiagnosticSink) -> None:
    """Warn about box style values outside the box style grammar."""
    for item in attrs.items:
        value = item.value.raw.strip()
        if item.key in COLOR_KEYS:
            invalid = not is_hex_color(value)
        elif item.key == "border-style":
            invalid = value not in BORDER_STYLES
        elif item.key == "border-width":
            invalid = not is_border_width(value)
        else:
            invalid = False
        if invalid:
            sink.warning(item.value.span, W_BOX_STYLE_INVALID, "invalid box style value")
