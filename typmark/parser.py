"""Block parser and the `parse` entry point.

Blocks are recognized line by line in a fixed precedence order. Container
blocks (block quotes, list items and boxes) collect their de-prefixed lines
and recurse. Leaf blocks hand their text to `InlineParser` together with a
per-character offset table pointing back into the source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .attributes import parse_attr_list, parse_code_meta, split_fence_info, validate_box_styles
from .diagnostics import E_ATTR_SYNTAX, E_TARGET_ORPHAN, Diagnostic, DiagnosticSink
from .html_blocks import html_block_end, match_html_block_start
from .inlines import InlineParser, detect_task_marker
from .lines import (
    Line,
    blockquote_prefix_info,
    colon_fence_len,
    indent_prefix_len,
    is_box_open,
    is_fence_close,
    is_target_line_text,
    is_thematic_break_line,
    parse_atx_heading,
    parse_fence_open,
    parse_list_marker,
    remove_indent_columns,
    remove_list_indent,
    setext_underline_level,
    split_lines,
    strip_blockquote_prefix,
    strip_leading_spaces,
    table_line_view,
)
from .links import parse_link_reference_definition
from .models import (
    AttrList,
    Block,
    BlockQuote,
    BoxBlock,
    CodeBlock,
    CodeBlockKind,
    CodeMeta,
    Document,
    Heading,
    HtmlBlock,
    Inline,
    LinkDefinition,
    ListBlock,
    ListItem,
    MathBlock,
    Paragraph,
    Table,
    ThematicBreak,
)
from .source_map import SourceMap
from .span import Span
from .tables import TableCell, parse_table_separator, split_table_cells
from .text import unescape_and_decode

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Output of `parse`.

    Attributes:
        document: The block tree, before section folding.
        diagnostics: Problems found while parsing.
        source_map: Offset to line/column map of the decoded source.
        link_defs: Link reference definitions keyed by normalized label.
    """

    document: Document
    diagnostics: list[Diagnostic]
    source_map: SourceMap
    link_defs: dict[str, LinkDefinition]


def build_inline_buffer(lines: list[Line]) -> tuple[str, list[int]]:
    """Join paragraph lines into one buffer with LF separators.

    Up to three leading spaces are dropped from every line and trailing
    spaces/tabs from the last one.

    Returns:
        tuple[str, list[int]]: The buffer and the source offset of each of its
            characters.
    """
    parts: list[str] = []
    offsets: list[int] = []
    for idx, line in enumerate(lines):
        text = line.text
        removed = len(text) - len(text.lstrip(" "))
        removed = min(removed, 3)
        text = text[removed:]
        if idx + 1 == len(lines):
            text = text.rstrip(" \t")
        parts.append(text)
        # De-indented container lines may be longer than their source text
        offsets.extend(line.offset_after(removed + k) for k in range(len(text)))
        if line.has_newline and idx + 1 < len(lines):
            parts.append("\n")
            offsets.append(line.end)
    return "".join(parts), offsets


def build_heading_buffer(lines: list[Line]) -> tuple[str, list[int]]:
    buffer, offsets = build_inline_buffer(lines)
    start = len(buffer) - len(buffer.lstrip(" \t"))
    end = len(buffer.rstrip(" \t"))
    if start >= end:
        return "", []
    return buffer[start:end], offsets[start:end]


def block_line_range(lines: list[Line], span: Span) -> tuple[int, int] | None:
    start_idx = None
    for idx, line in enumerate(lines):
        if start_idx is None and span.start <= line.end:
            start_idx = idx
        if span.end <= line.end:
            return (start_idx if start_idx is not None else idx), idx
    return None


def item_has_blank_between_blocks(lines: list[Line], blocks: list[Block]) -> bool:
    """Return True when a blank or target line separates blocks of one list item."""
    if not blocks:
        return False
    covered = [False] * len(lines)
    for block in blocks:
        line_range = block_line_range(lines, block.span)
        if line_range is None:
            return True
        for idx in range(line_range[0], line_range[1] + 1):
            covered[idx] = True

    covered_idx = [idx for idx, flag in enumerate(covered) if flag]
    if not covered_idx:
        return False
    start_idx = covered_idx[0]
    end_idx = covered_idx[-1]
    relevant = [idx for idx, line in enumerate(lines) if not line.is_blank()]
    if relevant and relevant[-1] > end_idx:
        end_idx = relevant[-1]

    for idx in range(start_idx, end_idx + 1):
        if covered[idx]:
            continue
        if lines[idx].is_blank() or is_target_line_text(lines[idx].text):
            return True
    return False


def _all_chars(text: str, char: str) -> bool:
    return bool(text) and not text.strip(char)


class BlockParser:
    """Turns source lines into blocks, reporting into a shared sink.

    Args:
        source: Decoded source text.
        source_map: Map of `source`; built when omitted.
        link_defs: Definitions collected by an earlier pass. New definitions
            are added to the same mapping.
        parse_inlines: When False, leaf content is left empty. Used by the
            definition-collecting prepass.
    """

    def __init__(
        self,
        source: str,
        source_map: SourceMap | None = None,
        link_defs: dict[str, LinkDefinition] | None = None,
        parse_inlines: bool = True,
    ):
        self.source = source
        self.source_map = source_map or SourceMap(source)
        self.sink = DiagnosticSink(self.source_map)
        self.link_defs: dict[str, LinkDefinition] = dict(link_defs or {})
        self.parse_inlines = parse_inlines
        self.inlines = InlineParser(self.sink, self.link_defs)
        self.productions = (
            self._parse_fenced_code,
            self._parse_indented_code,
            self._parse_math_block,
            self._parse_box,
            self._parse_html_block,
            self._parse_thematic_break,
            self._parse_block_quote,
            self._parse_list,
            self._parse_table,
            self._parse_atx_heading,
        )

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self.sink.diagnostics

    def parse_document(self) -> Document:
        """Parse the whole source, splitting off a leading settings line."""
        lines = split_lines(self.source)
        settings = None
        pending = None

        first = next((idx for idx, line in enumerate(lines) if not line.is_blank()), None)
        if first is not None and is_target_line_text(lines[first].text):
            attrs = self._parse_target_line(lines[first])
            if attrs.label is None:
                settings = attrs
            else:
                pending = attrs
            lines = lines[first + 1 :]

        blocks = self.parse_blocks(lines, pending)
        return Document(Span(0, len(self.source)), blocks, settings)

    def parse_blocks(self, lines: list[Line], pending: AttrList | None = None) -> list[Block]:
        """Parse one container's lines.

        Args:
            lines: Container lines with container prefixes removed.
            pending: Target-line attributes waiting for the first block.

        Returns:
            list[Block]: Blocks in source order.
        """
        blocks: list[Block] = []
        i = 0
        while i < len(lines):
            line = lines[i]
            if line.is_blank():
                i += 1
                continue

            if is_target_line_text(line.text):
                attrs = self._parse_target_line(line)
                self._report_orphan(pending)
                pending = attrs
                i += 1
                continue

            for production in self.productions:
                parsed = production(lines, i)
                if parsed is not None:
                    block, i = parsed
                    break
            else:
                block, next_index = self._parse_paragraph(lines, i)
                # Guarantee progress on lines no production accepts
                i = next_index if next_index > i else i + 1
                if block is None:
                    continue

            self._finalize_block(block, pending)
            pending = None
            blocks.append(block)

        self._report_orphan(pending)
        return blocks

    def _report_orphan(self, pending: AttrList | None) -> None:
        if pending is not None and pending.span is not None:
            self.sink.error(pending.span, E_TARGET_ORPHAN, "target line has no following block")

    def _finalize_block(self, block: Block, pending: AttrList | None) -> None:
        if pending is not None:
            if pending.label is not None:
                if block.attrs.label is not None:
                    self.sink.error(pending.label.span, E_ATTR_SYNTAX, "duplicate label")
                else:
                    block.attrs.label = pending.label
            if pending.span is not None:
                block.attrs.span = pending.span
            block.attrs.items.extend(pending.items)
        if isinstance(block.kind, BoxBlock):
            validate_box_styles(block.attrs, self.sink)

    def _parse_target_line(self, line: Line) -> AttrList:
        open_idx = line.text.find("{")
        close_idx = line.text.rfind("}")
        return parse_attr_list(line.text[open_idx : close_idx + 1], line.start + open_idx, self.sink)

    def _span(self, start: int, end: int) -> Span:
        return self.sink.span(start, end)

    def _inline(self, text: str, line: Line, consumed: int) -> list[Inline]:
        """Parse `text`, found `consumed` characters into `line`."""
        if not self.parse_inlines:
            return []
        offsets = [line.offset_after(consumed + idx) for idx in range(len(text))]
        return self.inlines.parse_buffer(text, offsets)

    def _inline_buffer(self, buffer: str, offsets: list[int]) -> list[Inline]:
        if not self.parse_inlines:
            return []
        return self.inlines.parse_buffer(buffer, offsets)

    # Line classification

    def is_block_start(self, line: Line) -> bool:
        text = line.text
        return (
            parse_fence_open(text) is not None
            or text.strip() == "$$"
            or is_box_open(text)
            or match_html_block_start(text) is not None
            or blockquote_prefix_info(text) is not None
            or is_thematic_break_line(text)
            or parse_list_marker(text) is not None
            or parse_atx_heading(text) is not None
            or is_target_line_text(text)
        )

    def _interrupts_paragraph(self, line: Line) -> bool:
        html_kind = match_html_block_start(line.text)
        if html_kind is not None:
            return html_kind.number != 7
        marker = parse_list_marker(line.text)
        if marker is not None:
            # Only non-empty bullets and ordered items starting at 1 interrupt
            return not marker.empty and (not marker.ordered or marker.start == 1)
        return self.is_block_start(line)

    def line_can_continue_paragraph(self, line: Line) -> bool:
        if line.is_blank() or setext_underline_level(line.text) is not None:
            return False
        return not self._interrupts_paragraph(line)

    # Leaf blocks

    def _parse_fenced_code(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        fence = parse_fence_open(line.text)
        if fence is None:
            return None
        indent, fence_len, fence_char, raw_info = fence
        info = unescape_and_decode(raw_info)
        lang, info_attrs = split_fence_info(info, line.text, line.start, self.sink)

        code_lines = []
        i = start + 1
        while i < len(lines):
            candidate = lines[i]
            i += 1
            if is_fence_close(candidate.text, fence_len, fence_char):
                break
            code_lines.append(strip_leading_spaces(candidate.text, indent))
        text = "\n".join(code_lines)
        meta = parse_code_meta(info_attrs, text, self._span(line.start, line.end), self.sink)

        block_attrs = AttrList()
        if info_attrs.label is not None:
            block_attrs.span = info_attrs.span
            block_attrs.label = info_attrs.label
        code = CodeBlock(CodeBlockKind.FENCED, lang, info_attrs, meta, text)
        return Block(self._span(line.start, lines[i - 1].end), code, block_attrs), i

    def _parse_indented_code(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        if indent_prefix_len(line.text, 4) is None:
            return None
        code_lines: list[str] = []
        pending_blank = 0
        last_line_idx = start
        i = start
        while i < len(lines):
            current = lines[i]
            if current.is_blank():
                pending_blank += 1
                i += 1
                continue
            if indent_prefix_len(current.text, 4) is None:
                break
            code_lines.extend([""] * pending_blank)
            pending_blank = 0
            code_lines.append(remove_indent_columns(current.text, 4))
            last_line_idx = i
            i += 1
        code = CodeBlock(CodeBlockKind.INDENTED, None, AttrList(), CodeMeta(), "\n".join(code_lines))
        return Block(self._span(line.start, lines[last_line_idx].end), code), i

    def _parse_math_block(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        trimmed = line.text.strip()
        if not trimmed.startswith("$$"):
            return None
        if trimmed != "$$" and trimmed.endswith("$$") and len(trimmed) > 4:
            # Single-line form: $$ x^2 $$
            content = trimmed
            while content.startswith("$$"):
                content = content[2:]
            while content.endswith("$$"):
                content = content[:-2]
            return Block(self._span(line.start, line.end), MathBlock(content)), start + 1

        body = []
        i = start + 1
        while i < len(lines):
            candidate = lines[i]
            i += 1
            if candidate.text.strip() == "$$":
                break
            body.append(candidate.text)
        return Block(self._span(line.start, lines[i - 1].end), MathBlock("\n".join(body))), i

    def _parse_html_block(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        kind = match_html_block_start(line.text)
        if kind is None:
            return None
        raw_lines = [line.text]
        i = start + 1
        if not kind.ends_at_blank_line and html_block_end(kind, line.text):
            return Block(self._span(line.start, line.end), HtmlBlock(line.text)), i

        if kind.ends_at_blank_line:
            while i < len(lines) and not lines[i].is_blank():
                raw_lines.append(lines[i].text)
                i += 1
        else:
            while i < len(lines):
                if not lines[i].has_newline and not lines[i].text:
                    break
                raw_lines.append(lines[i].text)
                i += 1
                if html_block_end(kind, lines[i - 1].text):
                    break
        span = self._span(line.start, lines[i - 1].end)
        return Block(span, HtmlBlock("\n".join(raw_lines))), i

    def _parse_thematic_break(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        if not is_thematic_break_line(line.text):
            return None
        return Block(self._span(line.start, line.end), ThematicBreak()), start + 1

    def _parse_atx_heading(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        heading = parse_atx_heading(line.text)
        if heading is None:
            return None
        level, content_start, content_end = heading
        title = self._inline(line.text[content_start:content_end], line, content_start)
        return Block(self._span(line.start, line.end), Heading(level, title)), start + 1

    def _parse_table(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        if start + 1 >= len(lines):
            return None
        line = lines[start]
        header_view = table_line_view(line.text)
        if header_view is None:
            return None
        header_cells, header_has_pipe = split_table_cells(header_view[1], header_view[0])
        if not header_has_pipe:
            return None
        separator_view = table_line_view(lines[start + 1].text)
        if separator_view is None:
            return None
        aligns = parse_table_separator(separator_view[1], separator_view[0])
        if not aligns or len(aligns) != len(header_cells):
            return None

        headers = self._table_row(line, header_cells, len(aligns))
        rows = []
        i = start + 2
        while i < len(lines):
            row_line = lines[i]
            if row_line.is_blank():
                break
            row_view = table_line_view(row_line.text)
            if row_view is None:
                break
            cells, has_pipe = split_table_cells(row_view[1], row_view[0])
            if not has_pipe:
                break
            rows.append(self._table_row(row_line, cells, len(aligns)))
            i += 1
        span = self._span(line.start, lines[i - 1].end)
        return Block(span, Table(headers, aligns, rows)), i

    def _table_row(self, line: Line, cells: list[TableCell], expected: int) -> list[list[Inline]]:
        row = [self._inline(cell.text, line, cell.start) for cell in cells[:expected]]
        row.extend([] for _ in range(expected - len(row)))
        return row

    def _parse_paragraph(self, lines: list[Line], start: int) -> tuple[Block | None, int]:
        content_lines: list[Line] = []
        setext_level = None
        setext_end = start
        i = start
        while i < len(lines):
            line = lines[i]
            if line.is_blank() or self._interrupts_paragraph(line):
                break
            if not content_lines:
                definition = parse_link_reference_definition(lines, i)
                if definition is not None:
                    label, link_def, next_index = definition
                    # First definition wins
                    self.link_defs.setdefault(label, link_def)
                    i = next_index
                    continue
            content_lines.append(line)
            if (
                i + 1 < len(lines)
                and not line.lazy_continuation
                and setext_underline_level(lines[i + 1].text) is not None
            ):
                setext_level = setext_underline_level(lines[i + 1].text)
                setext_end = i + 1
                break
            i += 1

        if not content_lines:
            return None, i

        first = content_lines[0]
        if setext_level is not None:
            buffer, offsets = build_heading_buffer(content_lines)
            title = self._inline_buffer(buffer, offsets)
            span = self._span(first.start, lines[setext_end].end)
            return Block(span, Heading(setext_level, title)), setext_end + 1

        buffer, offsets = build_inline_buffer(content_lines)
        content = self._inline_buffer(buffer, offsets)
        span = self._span(first.start, content_lines[-1].end)
        return Block(span, Paragraph(content)), i

    # Container blocks

    def _parse_box(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        if not is_box_open(line.text):
            return None
        fence_len = colon_fence_len(line.text)
        rest = line.text[fence_len:].lstrip()
        title_text = rest[len("box") :].lstrip()
        title = None
        if title_text and self.parse_inlines:
            title = self._inline(title_text, line, len(line.text) - len(title_text))

        inner: list[Line] = []
        fence_stack = [fence_len]
        i = start + 1
        while i < len(lines):
            candidate = lines[i]
            trimmed = candidate.text.strip()
            code_fence = parse_fence_open(candidate.text)
            if code_fence is not None:
                # Colons inside nested code never close the box
                _, inner_len, fence_char, _ = code_fence
                inner.append(candidate)
                i += 1
                while i < len(lines):
                    nested = lines[i]
                    inner.append(nested)
                    i += 1
                    nested_trimmed = nested.text.strip()
                    if len(nested_trimmed) >= inner_len and _all_chars(nested_trimmed, fence_char):
                        break
                continue
            if trimmed == "$$":
                inner.append(candidate)
                i += 1
                while i < len(lines):
                    inner.append(lines[i])
                    i += 1
                    if lines[i - 1].text.strip() == "$$":
                        break
                continue
            if is_box_open(candidate.text):
                fence_stack.append(colon_fence_len(candidate.text))
                inner.append(candidate)
                i += 1
                continue
            if len(trimmed) >= 3 and _all_chars(trimmed, ":") and len(trimmed) >= fence_stack[-1]:
                fence_stack.pop()
                i += 1
                if not fence_stack:
                    break
                inner.append(candidate)
                continue
            inner.append(candidate)
            i += 1

        blocks = self.parse_blocks(inner)
        span = self._span(line.start, lines[i - 1].end)
        return Block(span, BoxBlock(title, blocks)), i

    def _parse_block_quote(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        line = lines[start]
        if blockquote_prefix_info(line.text) is None:
            return None
        quote_lines: list[Line] = []
        can_lazy = False
        i = start
        while i < len(lines):
            candidate = lines[i]
            stripped = strip_blockquote_prefix(candidate.text)
            if stripped is not None:
                text, prefix_len = stripped
                inner = Line(
                    text, candidate.offset_after(prefix_len), candidate.end, candidate.has_newline
                )
                marker = parse_list_marker(text)
                list_allows_lazy = marker is not None and (
                    remove_list_indent(text, marker.content_indent).lstrip().startswith(">")
                )
                can_lazy = (
                    self.line_can_continue_paragraph(inner)
                    or text.lstrip().startswith(">")
                    or list_allows_lazy
                )
                quote_lines.append(inner)
                i += 1
                continue
            if candidate.is_blank() or not can_lazy:
                break
            if (
                not self.line_can_continue_paragraph(candidate)
                and setext_underline_level(candidate.text) is None
            ):
                break
            if is_thematic_break_line(candidate.text):
                break
            if quote_lines and indent_prefix_len(quote_lines[-1].text, 4) is not None:
                break
            quote_lines.append(
                Line(
                    candidate.text,
                    candidate.start,
                    candidate.end,
                    candidate.has_newline,
                    lazy_continuation=True,
                )
            )
            i += 1

        blocks = self.parse_blocks(quote_lines)
        span = self._span(line.start, lines[i - 1].end)
        return Block(span, BlockQuote(blocks)), i

    def _lazy_allowed(self, line: Line) -> bool:
        return self.line_can_continue_paragraph(line) or line.text.lstrip().startswith(">")

    def _parse_list(self, lines: list[Line], start: int) -> tuple[Block, int] | None:
        marker = parse_list_marker(lines[start].text)
        if marker is None:
            return None
        items: list[ListItem] = []
        list_has_blank = False
        item_has_blank = False
        list_end = lines[start].end
        i = start

        while i < len(lines):
            current = lines[i]
            current_marker = parse_list_marker(current.text)
            if current_marker is None or not current_marker.same_type(marker):
                break
            content_indent = current_marker.content_indent
            first_text = remove_list_indent(current.text, content_indent)
            item_lines = [
                Line(
                    first_text,
                    current.offset_after(current_marker.marker_len),
                    current.end,
                    current.has_newline,
                )
            ]
            seen_content = bool(first_text.strip())
            initial_blank_lines = 0 if seen_content else 1
            can_lazy = self._lazy_allowed(item_lines[-1])
            last_line_idx = i
            pending_blank: list[Line] = []

            j = i + 1
            while j < len(lines):
                next_line = lines[j]
                if next_line.is_blank():
                    if not seen_content:
                        if initial_blank_lines >= 1:
                            # An empty item may be followed by one blank line and another item
                            k = j + 1
                            while k < len(lines) and lines[k].is_blank():
                                list_has_blank = True
                                k += 1
                            if k < len(lines):
                                following = parse_list_marker(lines[k].text)
                                if following is not None and following.same_type(marker):
                                    list_has_blank = True
                                    j = k
                            break
                        initial_blank_lines += 1
                    pending_blank.append(next_line)
                    can_lazy = False
                    j += 1
                    continue

                if indent_prefix_len(next_line.text, content_indent) is not None:
                    item_lines.extend(
                        Line("", blank.start, blank.end, blank.has_newline) for blank in pending_blank
                    )
                    pending_blank.clear()
                    item_lines.append(
                        Line(
                            remove_indent_columns(next_line.text, content_indent),
                            next_line.start,
                            next_line.end,
                            next_line.has_newline,
                        )
                    )
                    seen_content = True
                    can_lazy = self._lazy_allowed(item_lines[-1])
                    last_line_idx = j
                    j += 1
                    continue

                next_marker = parse_list_marker(next_line.text)
                if next_marker is not None:
                    if next_marker.same_type(marker) and pending_blank:
                        list_has_blank = True
                    break

                if (
                    not pending_blank
                    and can_lazy
                    and setext_underline_level(next_line.text) is None
                    and self.line_can_continue_paragraph(next_line)
                ):
                    item_lines.append(next_line)
                    seen_content = True
                    last_line_idx = j
                    j += 1
                    continue
                break

            blocks = self.parse_blocks(item_lines)
            if item_has_blank_between_blocks(item_lines, blocks):
                item_has_blank = True
            task = detect_task_marker(blocks) if self.parse_inlines else None
            item_span = self._span(current.start, lines[last_line_idx].end)
            items.append(ListItem(item_span, blocks, task))
            list_end = item_span.end
            i = j

        tight = not list_has_blank and not item_has_blank
        list_block = ListBlock(marker.ordered, marker.start, tight, items)
        return Block(self._span(lines[start].start, list_end), list_block), i


def parse(source: str | bytes) -> ParseResult:
    """Parse TypMark source into a block tree.

    A first pass collects link reference definitions so references may
    precede their definitions; its diagnostics are discarded.

    Args:
        source: Source text. Bytes are decoded as UTF-8, replacing invalid
            sequences with U+FFFD.

    Returns:
        ParseResult: The document, diagnostics, source map and definitions.

    Examples:
        result = parse("# Title\\n\\nBody.")
        [type(block.kind).__name__ for block in result.document.blocks]
        # ["Heading", "Paragraph"]
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")

    source_map = SourceMap(source)
    prepass = BlockParser(source, source_map, parse_inlines=False)
    prepass.parse_document()

    parser = BlockParser(source, source_map, link_defs=prepass.link_defs)
    document = parser.parse_document()
    logger.debug(
        "Parsed %d top-level blocks, %d link definitions, %d diagnostics",
        len(document.blocks),
        len(parser.link_defs),
        len(parser.diagnostics),
    )
    return ParseResult(document, parser.diagnostics, source_map, parser.link_defs)
