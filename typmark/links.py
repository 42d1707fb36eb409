"""Link destinations, titles and reference definitions."""

from __future__ import annotations

from .labels import has_unescaped_brackets, normalize_link_label
from .lines import Line
from .models import LinkDefinition
from .text import (
    ASCII_PUNCTUATION,
    ASCII_WHITESPACE,
    is_space_or_tab,
    percent_encode_url,
    unescape_and_decode,
)

TITLE_CLOSERS = {'"': '"', "'": "'", "(": ")"}


def find_bracket_end(text: str, start: int, end: int) -> tuple[int, bool] | None:
    """Find the ``]`` balancing an already consumed ``[``.

    Returns:
        tuple[int, bool] | None: Index of the closing bracket and whether a
            newline was crossed, or None when unbalanced.
    """
    depth = 0
    escaped = False
    had_newline = False
    for i in range(start, end):
        char = text[i]
        if char == "\n":
            had_newline = True
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "[":
            depth += 1
        elif char == "]":
            if depth == 0:
                return i, had_newline
            depth -= 1
    return None


def _read_escaped(text: str, i: int, end: int, out: list[str]) -> int:
    """Append the character(s) of a backslash at `i`; returns the next index."""
    if i + 1 < end and text[i + 1] in ASCII_PUNCTUATION:
        out.append(text[i + 1])
        return i + 2
    out.append("\\")
    return i + 1


def parse_link_title(text: str, start: int, end: int) -> tuple[str, int] | None:
    """Parse a single-line ``"title"``, ``'title'`` or ``(title)``."""
    if start >= end or text[start] not in TITLE_CLOSERS:
        return None
    close = TITLE_CLOSERS[text[start]]
    out: list[str] = []
    i = start + 1
    while i < end:
        char = text[i]
        if char == "\n":
            return None
        if char == "\\":
            i = _read_escaped(text, i, end, out)
            continue
        if char == close:
            return unescape_and_decode("".join(out)), i + 1
        out.append(char)
        i += 1
    return None


def _read_destination(text: str, i: int, end: int, balance_parens: bool) -> tuple[str, int] | None:
    out: list[str] = []
    if i < end and text[i] == "<":
        i += 1
        while i < end:
            char = text[i]
            if char == "\n":
                return None
            if char == "\\":
                i = _read_escaped(text, i, end, out)
                continue
            if char == ">":
                return "".join(out), i + 1
            out.append(char)
            i += 1
        return None

    depth = 0
    while i < end:
        char = text[i]
        if char in ASCII_WHITESPACE:
            break
        if char == "\\":
            i = _read_escaped(text, i, end, out)
            continue
        if balance_parens and char == "(":
            depth += 1
        elif balance_parens and char == ")":
            if depth == 0:
                break
            depth -= 1
        out.append(char)
        i += 1
    if depth > 0:
        return None
    return "".join(out), i


def parse_inline_link_destination(
    text: str, start: int, end: int
) -> tuple[str, str | None, int] | None:
    """Parse ``(destination "title")`` right after a closing bracket.

    Returns:
        tuple[str, str | None, int] | None: The percent-encoded URL, the
            optional title and the index of the closing parenthesis.

    Examples:
        parse_inline_link_destination('(/a "t")', 0, 8)  # ("/a", "t", 7)
    """
    if start >= end or text[start] != "(":
        return None
    i = start + 1
    while i < end and text[i] in ASCII_WHITESPACE:
        if text[i] == "\n":
            return None
        i += 1
    if i >= end:
        return None

    destination = _read_destination(text, i, end, balance_parens=True)
    if destination is None:
        return None
    raw_url, i = destination
    url = percent_encode_url(unescape_and_decode(raw_url))

    had_space = False
    while i < end and text[i] in ASCII_WHITESPACE:
        had_space = True
        i += 1
    if i >= end:
        return None
    if text[i] == ")":
        return url, None, i
    if not had_space:
        return None

    title = parse_link_title(text, i, end)
    if title is None:
        return None
    title_text, i = title
    while i < end and text[i] in ASCII_WHITESPACE:
        i += 1
    if i < end and text[i] == ")":
        return url, title_text, i
    return None


def parse_reference_destination(text: str, start: int) -> tuple[str, int] | None:
    """Parse the destination of a link reference definition."""
    destination = _read_destination(text, start, len(text), balance_parens=False)
    if destination is None:
        return None
    raw_url, end = destination
    if not raw_url and text[start] != "<":
        return None
    return percent_encode_url(unescape_and_decode(raw_url)), end


def _skip_spaces_tabs(text: str, pos: int) -> int:
    while pos < len(text) and is_space_or_tab(text[pos]):
        pos += 1
    return pos


def _only_spaces_tabs_after(text: str, pos: int) -> bool:
    return all(is_space_or_tab(char) for char in text[pos:])


def _scan_multiline(
    lines: list[Line], line_idx: int, pos: int, close: str, nest: str | None
) -> tuple[str, int, int] | None:
    """Scan forward across lines until an unescaped `close`.

    A blank line stops the scan. Lines are joined with LF.

    Returns:
        tuple[str, int, int] | None: The unescaped content, the index of the
            line holding `close` and the position of `close` in that line.
    """
    out: list[str] = []
    depth = 0
    escaped = False
    while True:
        text = lines[line_idx].text
        while pos < len(text):
            char = text[pos]
            if escaped:
                out.append(char)
                escaped = False
            elif char == "\\":
                if pos + 1 < len(text) and text[pos + 1] in ASCII_PUNCTUATION:
                    escaped = True
                else:
                    out.append("\\")
            elif nest is not None and char == nest:
                depth += 1
                out.append(char)
            elif char == close:
                if depth == 0:
                    return "".join(out), line_idx, pos
                depth -= 1
                out.append(char)
            else:
                out.append(char)
            pos += 1
        line_idx += 1
        if line_idx >= len(lines) or lines[line_idx].is_blank():
            return None
        out.append("\n")
        pos = 0


def _parse_title_multiline(lines: list[Line], line_idx: int, pos: int) -> tuple[str, int, int] | None:
    text = lines[line_idx].text
    if pos >= len(text) or text[pos] not in TITLE_CLOSERS:
        return None
    scanned = _scan_multiline(lines, line_idx, pos + 1, TITLE_CLOSERS[text[pos]], None)
    if scanned is None:
        return None
    title, end_line, close_pos = scanned
    return title, end_line, close_pos + 1


def parse_link_reference_definition(
    lines: list[Line], start: int
) -> tuple[str, LinkDefinition, int] | None:
    """Parse ``[label]: destination "title"`` starting at ``lines[start]``.

    The label and the title may span several lines; a blank line ends the
    attempt. The destination may sit on the line after the label.

    Args:
        lines: Lines of the current container.
        start: Index of the first line of the candidate definition.

    Returns:
        tuple[str, LinkDefinition, int] | None: The normalized label, the
            definition and the index of the first line after it, or None.

    Examples:
        parse_link_reference_definition(split_lines('[a]: /url "t"'), 0)
        # ("a", LinkDefinition("/url", "t"), 1)
    """
    text = lines[start].text
    i = 0
    while i < len(text) and i < 4 and text[i] == " ":
        i += 1
    if i > 3 or i >= len(text) or text[i] != "[":
        return None

    bracket = find_bracket_end(text, i + 1, len(text))
    if bracket is not None:
        label_end, _ = bracket
        raw_label = text[i + 1 : label_end]
        label_line = start
    else:
        scanned = _scan_multiline(lines, start, i + 1, "]", "[")
        if scanned is None:
            return None
        raw_label, label_line, label_end = scanned

    label = normalize_link_label(raw_label)
    if not label or has_unescaped_brackets(raw_label):
        return None

    label_text = lines[label_line].text
    pos = label_end + 1
    if pos >= len(label_text) or label_text[pos] != ":":
        return None
    pos = _skip_spaces_tabs(label_text, pos + 1)

    line_idx = label_line
    dest_on_new_line = False
    if pos >= len(label_text):
        line_idx += 1
        if line_idx >= len(lines):
            return None
        pos = _skip_spaces_tabs(lines[line_idx].text, 0)
        dest_on_new_line = True
    dest_text = lines[line_idx].text
    if pos >= len(dest_text):
        return None

    destination = parse_reference_destination(dest_text, pos)
    if destination is None:
        return None
    url, pos = destination

    after_dest = _skip_spaces_tabs(dest_text, pos)
    had_space = after_dest > pos
    pos = after_dest
    title = None
    end_line = line_idx

    if pos < len(dest_text):
        # Title on the destination line; other trailing text is ignored
        if dest_text[pos] not in TITLE_CLOSERS:
            return label, LinkDefinition(url), end_line + 1
        if not had_space:
            return None
        parsed = _parse_title_multiline(lines, line_idx, pos)
        if parsed is None:
            return None
        raw_title, title_line, title_end = parsed
        if not _only_spaces_tabs_after(lines[title_line].text, title_end):
            return None
        title = unescape_and_decode(raw_title)
        end_line = title_line
    elif line_idx + 1 < len(lines):
        # Title on the following line
        peek_text = lines[line_idx + 1].text
        peek_pos = _skip_spaces_tabs(peek_text, 0)
        if peek_pos < len(peek_text) and peek_text[peek_pos] in TITLE_CLOSERS:
            if not dest_on_new_line and peek_pos == 0:
                return label, LinkDefinition(url), end_line + 1
            parsed = _parse_title_multiline(lines, line_idx + 1, peek_pos)
            if parsed is None:
                return None
            raw_title, title_line, title_end = parsed
            if not _only_spaces_tabs_after(lines[title_line].text, title_end):
                return None
            title = unescape_and_decode(raw_title)
            end_line = title_line

    return label, LinkDefinition(url, title), end_line + 1
