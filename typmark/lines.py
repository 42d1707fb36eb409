"""Line splitting and the line-level recognizers used by the block parser.

Column arithmetic treats a tab as advancing to the next multiple of four.
"""

from __future__ import annotations

from dataclasses import dataclass

from .text import is_space_or_tab

TAB_STOP = 4


@dataclass
class Line:
    """Physical source line.

    Attributes:
        text: Line content without the terminating LF. Container parsers may
            replace it with a de-indented copy.
        start: Source offset of the first character of the original line.
        end: Source offset of the LF (or end of input).
        has_newline: Whether the line was terminated by LF.
        lazy_continuation: Whether the line joined a block quote lazily.
    """

    text: str
    start: int
    end: int
    has_newline: bool = False
    lazy_continuation: bool = False

    def is_blank(self) -> bool:
        return not self.text.strip()

    def offset_after(self, consumed: int) -> int:
        """Source offset `consumed` characters into the line, kept on its last character.

        Tab-expanded container text can be longer than the source line.
        """
        return min(self.start + consumed, max(self.end - 1, self.start))


@dataclass
class ListMarker:
    """Bullet or ordinal list marker found at the start of a line.

    Attributes:
        ordered: True for ``1.`` / ``1)`` markers.
        start: Ordinal value for ordered markers.
        marker_len: Characters consumed by indentation, marker and padding.
        content_indent: Column at which item content starts.
        empty: True when nothing but whitespace follows the marker.
        marker: The bullet character or the ordinal delimiter.
    """

    ordered: bool
    start: int | None
    marker_len: int
    content_indent: int
    empty: bool
    marker: str

    def same_type(self, other: ListMarker) -> bool:
        return self.ordered == other.ordered and self.marker == other.marker


def split_lines(source: str) -> list[Line]:
    """Split `source` at LF; the text after the last LF is always a line."""
    lines = []
    start = 0
    for index, char in enumerate(source):
        if char == "\n":
            lines.append(Line(source[start:index], start, index, has_newline=True))
            start = index + 1
    lines.append(Line(source[start:], start, len(source)))
    return lines


def advance_column(columns: int, char: str) -> int | None:
    if char == " ":
        return columns + 1
    if char == "\t":
        return columns + (TAB_STOP - columns % TAB_STOP)
    return None


def strip_indent_up_to(text: str, max_cols: int) -> str | None:
    """Strip leading whitespace worth at most `max_cols` columns.

    Returns:
        str | None: The text after its indentation, or None when the
            indentation is wider than `max_cols`.
    """
    cols = 0
    for pos, char in enumerate(text):
        next_cols = advance_column(cols, char)
        if next_cols is None:
            return text[pos:]
        cols = next_cols
        if cols > max_cols:
            return None
    return ""


def indent_prefix_len(text: str, required: int) -> int | None:
    """Return how many characters make up `required` columns of indentation."""
    if required == 0:
        return 0
    columns = 0
    for index, char in enumerate(text):
        next_cols = advance_column(columns, char)
        if next_cols is None:
            break
        columns = next_cols
        if columns >= required:
            return index + 1
    return None


def _expand_rest(text: str, pos: int, col: int, out: list[str]) -> str:
    # Tabs expand relative to their column in the original line.
    for char in text[pos:]:
        if char == "\t":
            next_stop = col + (TAB_STOP - col % TAB_STOP)
            out.append(" " * (next_stop - col))
            col = next_stop
        else:
            out.append(char)
            if char not in "\r\n":
                col += 1
    return "".join(out)


def remove_indent_columns(text: str, columns: int) -> str:
    """Remove `columns` columns of indentation and expand the remaining tabs.

    A tab that straddles the cut leaves its residual columns as spaces.

    Examples:
        remove_indent_columns("\\tcode", 2)  # "  code"
    """
    col = 0
    pos = 0
    while pos < len(text) and col < columns:
        char = text[pos]
        if char == " ":
            col += 1
            pos += 1
        elif char == "\t":
            next_col = col + (TAB_STOP - col % TAB_STOP)
            if next_col > columns:
                break
            col = next_col
            pos += 1
        else:
            break

    out: list[str] = []
    if col < columns and pos < len(text) and text[pos] == "\t":
        tab_end = col + (TAB_STOP - col % TAB_STOP)
        out.append(" " * (tab_end - columns))
        col = tab_end
        pos += 1
    return _expand_rest(text, pos, col, out)


def remove_list_indent(text: str, content_indent: int) -> str:
    """Remove the marker and padding of a list item's first line.

    Unlike `remove_indent_columns`, marker characters count as one column each.
    """
    col = 0
    pos = 0
    while pos < len(text) and col < content_indent:
        char = text[pos]
        if char == "\t":
            next_col = col + (TAB_STOP - col % TAB_STOP)
            if next_col > content_indent:
                break
            col = next_col
        else:
            col += 1
        pos += 1

    out: list[str] = []
    if col < content_indent and pos < len(text) and text[pos] == "\t":
        tab_end = col + (TAB_STOP - col % TAB_STOP)
        out.append(" " * (tab_end - content_indent))
        col = tab_end
        pos += 1
    return _expand_rest(text, pos, col, out)


def strip_leading_spaces(text: str, limit: int) -> str:
    count = 0
    while count < len(text) and count < limit and text[count] == " ":
        count += 1
    return text[count:]


def _leading_spaces(text: str, limit: int = 3) -> int | None:
    """Count up to `limit` leading spaces; None when one more space follows."""
    idx = 0
    while idx < len(text) and idx < limit and text[idx] == " ":
        idx += 1
    if idx < len(text) and text[idx] == " ":
        return None
    return idx


def parse_fence_open(text: str) -> tuple[int, int, str, str] | None:
    """Recognize an opening code fence.

    Returns:
        tuple[int, int, str, str] | None: Indentation width, fence length,
            fence character and the raw info string, or None.
    """
    indent = _leading_spaces(text)
    if indent is None:
        return None
    rest = text[indent:]
    if rest.startswith("```"):
        fence_char = "`"
    elif rest.startswith("~~~"):
        fence_char = "~"
    else:
        return None
    fence_len = len(rest) - len(rest.lstrip(fence_char))
    info = rest[fence_len:].strip(" \t")
    if fence_char == "`" and "`" in info:
        return None
    return indent, fence_len, fence_char, info


def is_fence_close(text: str, fence_len: int, fence_char: str) -> bool:
    indent = _leading_spaces(text)
    if indent is None:
        return False
    rest = text[indent:]
    count = len(rest) - len(rest.lstrip(fence_char))
    if count < fence_len:
        return False
    return all(is_space_or_tab(char) for char in rest[count:])


def setext_underline_level(text: str) -> int | None:
    trimmed = strip_indent_up_to(text, 3)
    if not trimmed or trimmed[0] not in "=-":
        return None
    char = trimmed[0]
    rest = trimmed.lstrip(char)
    if any(not is_space_or_tab(c) for c in rest):
        return None
    return 1 if char == "=" else 2


def parse_atx_heading(text: str) -> tuple[int, int, int] | None:
    """Recognize an ATX heading.

    Returns:
        tuple[int, int, int] | None: The level and the start/end indexes of
            the heading content within `text`, or None.

    Examples:
        parse_atx_heading("## Title ##")  # (2, 3, 8)
    """
    trimmed = strip_indent_up_to(text, 3)
    if not trimmed:
        return None
    indent_len = len(text) - len(trimmed)
    level = len(trimmed) - len(trimmed.lstrip("#"))
    if level == 0 or level > 6:
        return None
    if level < len(trimmed) and not is_space_or_tab(trimmed[level]):
        return None

    content_start = level
    while content_start < len(trimmed) and is_space_or_tab(trimmed[content_start]):
        content_start += 1
    content_end = len(trimmed)
    while content_end > content_start and is_space_or_tab(trimmed[content_end - 1]):
        content_end -= 1

    # Optional closing sequence of '#'
    if content_end > content_start:
        hash_start = content_end
        while hash_start > content_start and trimmed[hash_start - 1] == "#":
            hash_start -= 1
        if hash_start < content_end and (
            hash_start == content_start or is_space_or_tab(trimmed[hash_start - 1])
        ):
            content_end = hash_start
    while content_end > content_start and is_space_or_tab(trimmed[content_end - 1]):
        content_end -= 1
    return level, indent_len + content_start, indent_len + content_end


def is_thematic_break_line(text: str) -> bool:
    trimmed = strip_indent_up_to(text, 3)
    if not trimmed:
        return False
    marker = None
    count = 0
    for char in trimmed:
        if is_space_or_tab(char):
            continue
        if marker is None:
            if char not in "-*_":
                return False
            marker = char
        elif char != marker:
            return False
        count += 1
    return count >= 3


def blockquote_prefix_info(text: str) -> tuple[int, bool, int, int] | None:
    """Measure a ``>`` prefix.

    Returns:
        tuple[int, bool, int, int] | None: Characters to skip, whether a tab
            after ``>`` was only partly consumed, the columns left in that tab,
            and the column after the prefix. None when the line has no prefix.
    """
    idx = _leading_spaces(text)
    if idx is None or idx >= len(text) or text[idx] != ">":
        return None
    idx += 1
    col = idx
    partial_tab = False
    remaining_tab_cols = 0
    if idx < len(text):
        if text[idx] == " ":
            idx += 1
            col += 1
        elif text[idx] == "\t":
            to_tab_stop = TAB_STOP - col % TAB_STOP
            if to_tab_stop > 1:
                partial_tab = True
                remaining_tab_cols = to_tab_stop - 1
            else:
                idx += 1
            col += 1
    return idx, partial_tab, remaining_tab_cols, col


def strip_blockquote_prefix(text: str) -> tuple[str, int] | None:
    """Remove a ``>`` prefix, expanding tabs in the rest of the line.

    Returns:
        tuple[str, int] | None: The de-prefixed text and the number of source
            characters the prefix occupied, or None.
    """
    info = blockquote_prefix_info(text)
    if info is None:
        return None
    prefix_len, partial_tab, remaining_tab_cols, col = info
    out: list[str] = []
    content_start = prefix_len
    if partial_tab:
        out.append(" " * remaining_tab_cols)
        col += remaining_tab_cols
        content_start += 1
    for char in text[content_start:]:
        if char == "\t":
            next_stop = col + (TAB_STOP - col % TAB_STOP)
            out.append(" " * (next_stop - col))
            col = next_stop
        else:
            out.append(char)
            col += 1
    return "".join(out), prefix_len


def _scan_post_marker(text: str, start: int, start_col: int) -> tuple[int, int, int, int, bool]:
    """Measure the padding after a list marker.

    Returns:
        tuple: Columns advanced (at most 5), characters advanced, characters
            making up the content padding, content padding in columns (0 when
            the padding is not between 1 and 4 columns), and whether any
            non-whitespace follows.
    """
    idx = start
    col = start_col
    tab_remainder = 0
    while col - start_col < 5 and idx < len(text):
        if tab_remainder > 0:
            tab_remainder -= 1
            col += 1
            if tab_remainder == 0:
                idx += 1
            continue
        char = text[idx]
        if char == " ":
            col += 1
            idx += 1
        elif char == "\t":
            to_tab_stop = TAB_STOP - col % TAB_STOP
            col += 1
            if to_tab_stop > 1:
                tab_remainder = to_tab_stop - 1
            else:
                idx += 1
        else:
            break

    advanced = col - start_col
    consumed = idx - start
    has_nonspace = any(not is_space_or_tab(char) for char in text[idx:])

    if advanced == 0 or advanced > 4:
        return advanced, consumed, 0, 0, has_nonspace

    temp_col = start_col
    temp_idx = start
    while temp_col < start_col + advanced and temp_idx < len(text):
        char = text[temp_idx]
        if char == " ":
            temp_col += 1
            temp_idx += 1
        elif char == "\t":
            next_col = temp_col + (TAB_STOP - temp_col % TAB_STOP)
            if next_col > start_col + advanced:
                break
            temp_col = next_col
            temp_idx += 1
        else:
            break
    return advanced, consumed, temp_idx - start, advanced, has_nonspace


def parse_list_marker(text: str) -> ListMarker | None:
    """Recognize a bullet (``-``, ``+``, ``*``) or ordinal (``1.``, ``1)``) marker.

    Examples:
        parse_list_marker("- item").content_indent  # 2
        parse_list_marker("10) item").start  # 10
    """
    if not text or is_thematic_break_line(text):
        return None
    indent = _leading_spaces(text)
    if indent is None:
        return None

    idx = indent
    if idx < len(text) and text[idx] in "-+*":
        marker = text[idx]
        marker_end = idx + 1
        ordered = False
        start = None
    else:
        digits_end = idx
        while digits_end < len(text) and text[digits_end].isascii() and text[digits_end].isdigit():
            digits_end += 1
        digits = text[idx:digits_end]
        if not digits or len(digits) > 9 or digits_end >= len(text):
            return None
        marker = text[digits_end]
        if marker not in ".)":
            return None
        marker_end = digits_end + 1
        ordered = True
        start = int(digits)

    marker_width = marker_end - indent
    start_col = indent + marker_width
    advanced, consumed, content_chars, content_cols, has_nonspace = _scan_post_marker(
        text, marker_end, start_col
    )
    if advanced == 0 and has_nonspace:
        return None
    empty = not has_nonspace
    if empty:
        content_indent = start_col + 1
        marker_len = marker_end + consumed
    elif content_cols == 0:
        # Code-indented content: the padding is a single column
        content_indent = start_col + 1
        marker_len = marker_end
    else:
        content_indent = start_col + content_cols
        marker_len = marker_end + content_chars
    return ListMarker(
        ordered=ordered,
        start=start,
        marker_len=marker_len,
        content_indent=content_indent,
        empty=empty,
        marker=marker,
    )


def is_box_open(text: str) -> bool:
    if not text.startswith(":::"):
        return False
    fence_len = len(text) - len(text.lstrip(":"))
    return text[fence_len:].lstrip().startswith("box")


def colon_fence_len(text: str) -> int:
    return len(text) - len(text.lstrip(":"))


def is_target_line_text(text: str) -> bool:
    trimmed = text.strip()
    return len(trimmed) >= 2 and trimmed.startswith("{") and trimmed.endswith("}")


def table_line_view(text: str) -> tuple[int, str] | None:
    indent = _leading_spaces(text)
    if indent is None:
        return None
    return indent, text[indent:]
