"""Pipe table rows: cell splitting and the alignment separator."""

from __future__ import annotations

from dataclasses import dataclass

from .inlines import count_run
from .models import TableAlign


@dataclass
class TableCell:
    """Raw cell text.

    Attributes:
        text: Cell content with surrounding spaces and tabs trimmed.
        start: Index of the first content character within the row line.
    """

    text: str
    start: int


def _finalize_cell(text: str, start: int) -> TableCell:
    stripped = text.lstrip(" \t")
    leading = len(text) - len(stripped)
    return TableCell(stripped.rstrip(" \t"), start + leading)


def split_table_cells(text: str, base_offset: int = 0) -> tuple[list[TableCell], bool]:
    """Split a row on unescaped pipes that sit outside code spans.

    Leading and trailing empty cells produced by outer pipes are dropped.

    Args:
        text: Row text.
        base_offset: Added to every cell start.

    Returns:
        tuple[list[TableCell], bool]: The cells and whether any pipe was seen.

    Examples:
        cells, _ = split_table_cells("| a | `b|c` |")
        [cell.text for cell in cells]  # ["a", "`b|c`"]
    """
    cells: list[TableCell] = []
    buf: list[str] = []
    cell_start = 0
    had_pipe = False
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text) and text[i + 1] == "|":
            buf.append("\\|")
            i += 2
            continue
        if char == "`":
            run_len = count_run(text, i, len(text), "`")
            buf.append("`" * run_len)
            i += run_len
            while i < len(text):
                if text[i] == "`" and count_run(text, i, len(text), "`") == run_len:
                    buf.append("`" * run_len)
                    i += run_len
                    break
                buf.append(text[i])
                i += 1
            continue
        if char == "|":
            had_pipe = True
            cells.append(_finalize_cell("".join(buf), base_offset + cell_start))
            buf.clear()
            i += 1
            cell_start = i
            continue
        buf.append(char)
        i += 1
    cells.append(_finalize_cell("".join(buf), base_offset + cell_start))

    if had_pipe and len(cells) > 1:
        if not cells[0].text:
            cells.pop(0)
        if cells and not cells[-1].text:
            cells.pop()
    return cells, had_pipe


def parse_table_separator(text: str, base_offset: int = 0) -> list[TableAlign] | None:
    """Parse a ``| --- | :-: |`` row into column alignments."""
    cells, had_pipe = split_table_cells(text, base_offset)
    if not had_pipe:
        return None
    aligns = []
    for cell in cells:
        trimmed = cell.text.strip()
        if not trimmed:
            return None
        left = trimmed.startswith(":")
        right = trimmed.endswith(":")
        core = trimmed.strip(":")
        if len(core) < 3 or core.strip("-"):
            return None
        if left and right:
            aligns.append(TableAlign.CENTER)
        elif left:
            aligns.append(TableAlign.LEFT)
        elif right:
            aligns.append(TableAlign.RIGHT)
        else:
            aligns.append(TableAlign.NONE)
    return aligns
