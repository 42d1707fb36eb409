"""Inline parsing: code spans, math, autolinks, raw HTML, references and emphasis.

The parser makes a single left-to-right pass over a buffer that maps each
character back to a source offset. Delimiter runs and brackets are recorded
on side stacks; brackets are closed as ``]`` is met, emphasis is paired once
the scan ends.
"""

from __future__ import annotations

from dataclasses import dataclass

from .diagnostics import E_MATH_INLINE_NL, E_REF_BRACKET_NL, DiagnosticSink
from .html_blocks import scan_html_tag
from .labels import normalize_link_label, scan_label
from .links import find_bracket_end, parse_inline_link_destination
from .models import (
    Block,
    CodeSpan,
    Emph,
    HardBreak,
    HtmlSpan,
    Image,
    ImageRef,
    Inline,
    Label,
    Link,
    LinkDefinition,
    LinkRef,
    LinkRefMeta,
    MathInline,
    Paragraph,
    Ref,
    SoftBreak,
    Strikethrough,
    Strong,
    Text,
)
from .span import Span
from .text import (
    ASCII_PUNCTUATION,
    ASCII_WHITESPACE,
    decode_entity,
    is_autolink_email,
    is_autolink_scheme,
    percent_encode_autolink_url,
)

AUTOLINK_STOP = frozenset("<>\"'")
AUTOLINK_TRAILING_PUNCT = frozenset(".,;:!?")
AUTOLINK_BOUNDARY = frozenset("([{\"'")


@dataclass
class Delimiter:
    """Run of ``*``, ``_`` or ``~`` that may open or close emphasis.

    Attributes:
        char: Delimiter character.
        length: Unconsumed characters left in the run.
        node_index: Index of the run's text node in the output list.
        can_open: Whether the run may still open.
        can_close: Whether the run may still close.
        orig_can_open: Flanking result before any pairing.
        orig_can_close: Flanking result before any pairing.
    """

    char: str
    length: int
    node_index: int
    can_open: bool
    can_close: bool
    orig_can_open: bool
    orig_can_close: bool


@dataclass
class BracketEntry:
    node_index: int
    start: int
    image: bool
    active: bool = True


def count_run(text: str, start: int, end: int, char: str) -> int:
    i = start
    while i < end and text[i] == char:
        i += 1
    return i - start


def is_unicode_punctuation(char: str) -> bool:
    return not char.isspace() and not char.isalnum()


def delimiter_properties(
    buffer: str, start: int, end: int, pos: int, run_len: int, char: str
) -> tuple[bool, bool]:
    """Compute whether a delimiter run can open and close emphasis.

    Args:
        buffer: Inline buffer.
        start: Start of the range being parsed; nothing before it is visible.
        end: End of the range being parsed.
        pos: Index of the first character of the run.
        run_len: Length of the run.
        char: Delimiter character.

    Returns:
        tuple[bool, bool]: ``(can_open, can_close)``.
    """
    before = buffer[pos - 1] if pos > start else None
    after = buffer[pos + run_len] if pos + run_len < end else None

    before_space = before is None or before.isspace()
    after_space = after is None or after.isspace()
    before_punct = before is not None and is_unicode_punctuation(before)
    after_punct = after is not None and is_unicode_punctuation(after)

    left_flanking = not after_space and (not after_punct or before_space or before_punct)
    right_flanking = not before_space and (not before_punct or after_space or after_punct)

    if char == "_":
        can_open = left_flanking and (not right_flanking or before_punct)
        can_close = right_flanking and (not left_flanking or after_punct)
        return can_open, can_close
    return left_flanking, right_flanking


def delimiter_blocked(opener: Delimiter, closer: Delimiter) -> bool:
    """Apply the multiple-of-three rule to a candidate pair."""
    if opener.char != closer.char:
        return False
    opener_both = opener.orig_can_open and opener.orig_can_close
    closer_both = closer.orig_can_open and closer.orig_can_close
    if not opener_both and not closer_both:
        return False
    if (opener.length + closer.length) % 3 != 0:
        return False
    return opener.length % 3 != 0 or closer.length % 3 != 0


class InlineParser:
    """Parses inline content for the block parser.

    Args:
        sink: Receives ``E_MATH_INLINE_NL`` and ``E_REF_BRACKET_NL``.
        link_defs: Link reference definitions known so far, keyed by
            normalized label. Only defined labels form reference links.
    """

    def __init__(self, sink: DiagnosticSink, link_defs: dict[str, LinkDefinition]):
        self.sink = sink
        self.link_defs = link_defs

    def parse_buffer(self, buffer: str, offsets: list[int]) -> list[Inline]:
        """Parse `buffer`, whose characters sit at `offsets` in the source."""
        return self._parse_range(buffer, offsets, 0, len(buffer))

    def span_from_offsets(self, offsets: list[int], start: int, end: int) -> Span:
        limit = self.sink.limit
        start_offset = offsets[start] if start < len(offsets) else limit
        if end < len(offsets):
            end_offset = offsets[end]
        elif offsets:
            end_offset = offsets[-1] + 1
        else:
            end_offset = limit
        return Span.clamped(start_offset, end_offset, limit)

    def _parse_range(self, buffer: str, offsets: list[int], start: int, end: int) -> list[Inline]:
        out: list[Inline] = []
        delims: list[Delimiter] = []
        brackets: list[BracketEntry] = []
        text_buf: list[str] = []
        text_start = start
        i = start

        def flush(current: int) -> None:
            nonlocal text_start
            if text_buf:
                span = self.span_from_offsets(offsets, text_start, current)
                out.append(Inline(span, Text("".join(text_buf))))
                text_buf.clear()
            text_start = current

        def push_chars(chars: str, at: int) -> None:
            nonlocal text_start
            if not text_buf:
                text_start = at
            text_buf.extend(chars)

        def push_node(inline: Inline, at: int, next_index: int) -> int:
            flush(at)
            out.append(inline)
            return next_index

        while i < end:
            char = buffer[i]

            if char == "\\":
                if i + 1 < end:
                    following = buffer[i + 1]
                    if following == "\n":
                        flush(i)
                        out.append(Inline(self.span_from_offsets(offsets, i, i + 2), HardBreak()))
                        i += 2
                        text_start = i
                        continue
                    if following in ASCII_PUNCTUATION:
                        push_chars(following, i)
                        i += 2
                        continue
                push_chars("\\", i)
                i += 1
                continue

            if char == "`":
                parsed = self._parse_code_span(buffer, offsets, i, end)
                if parsed is not None:
                    i = push_node(parsed[0], i, parsed[1])
                    text_start = i
                    continue
                run_len = count_run(buffer, i, end, "`")
                push_chars("`" * run_len, i)
                i += run_len
                continue

            parsed = None
            if char == "$":
                parsed = self._parse_inline_math(buffer, offsets, i, end)
            elif char == "<":
                parsed = self._parse_autolink(buffer, offsets, i, end)
                if parsed is None:
                    parsed = self._parse_html_span(buffer, offsets, i, end)
            elif char == "@":
                parsed = self._parse_reference(buffer, offsets, i, end)
            if parsed is not None:
                i = push_node(parsed[0], i, parsed[1])
                text_start = i
                continue

            if char == "&":
                decoded = decode_entity(buffer, i, end)
                if decoded is not None:
                    push_chars(decoded[0], i)
                    i = decoded[1]
                    continue

            if char == "!" and i + 1 < end and buffer[i + 1] == "[":
                flush(i)
                out.append(Inline(self.span_from_offsets(offsets, i, i + 2), Text("![")))
                brackets.append(BracketEntry(len(out) - 1, i, image=True))
                i += 2
                text_start = i
                continue

            if char == "[":
                flush(i)
                out.append(Inline(self.span_from_offsets(offsets, i, i + 1), Text("[")))
                brackets.append(BracketEntry(len(out) - 1, i, image=False))
                i += 1
                text_start = i
                continue

            if char == "]":
                flush(i)
                next_index = self._try_close_link(buffer, offsets, end, i, out, delims, brackets)
                if next_index is not None:
                    i = next_index
                    text_start = i
                    continue
                push_chars("]", i)
                i += 1
                continue

            if char in "*_~":
                run_len = count_run(buffer, i, end, char)
                if char == "~" and run_len < 2:
                    push_chars("~", i)
                    i += 1
                    continue
                can_open, can_close = delimiter_properties(buffer, start, end, i, run_len, char)
                flush(i)
                span = self.span_from_offsets(offsets, i, i + run_len)
                out.append(Inline(span, Text(char * run_len)))
                if can_open or can_close:
                    delims.append(
                        Delimiter(char, run_len, len(out) - 1, can_open, can_close, can_open, can_close)
                    )
                i += run_len
                text_start = i
                continue

            if char == "\n":
                trailing = 0
                while trailing < len(text_buf) and text_buf[-1 - trailing] == " ":
                    trailing += 1
                if trailing:
                    del text_buf[-trailing:]
                flush(i)
                kind = HardBreak() if trailing >= 2 else SoftBreak()
                out.append(Inline(self.span_from_offsets(offsets, i, i + 1), kind))
                i += 1
                text_start = i
                continue

            push_chars(char, i)
            i += 1

        flush(end)
        self._process_emphasis(out, delims)
        return autolink_inlines(out)

    def _parse_code_span(
        self, buffer: str, offsets: list[int], start: int, end: int
    ) -> tuple[Inline, int] | None:
        run_len = count_run(buffer, start, end, "`")
        i = start + run_len
        while i < end:
            if buffer[i] != "`":
                i += 1
                continue
            close_len = count_run(buffer, i, end, "`")
            if close_len == run_len:
                content = buffer[start + run_len : i].replace("\n", " ")
                if (
                    len(content) >= 2
                    and content.startswith(" ")
                    and content.endswith(" ")
                    and content.strip(" ")
                ):
                    content = content[1:-1]
                span = self.span_from_offsets(offsets, start, i + run_len)
                return Inline(span, CodeSpan(content)), i + run_len
            i += close_len
        return None

    def _parse_inline_math(
        self, buffer: str, offsets: list[int], start: int, end: int
    ) -> tuple[Inline, int] | None:
        i = start + 1
        while i < end:
            char = buffer[i]
            if char == "\\":
                i += 2
                continue
            if char == "$":
                span = self.span_from_offsets(offsets, start, i + 1)
                content = buffer[start + 1 : i]
                if "\n" in content:
                    self.sink.error(span, E_MATH_INLINE_NL, "newline in inline math")
                return Inline(span, MathInline(content)), i + 1
            i += 1
        return None

    def _parse_autolink(
        self, buffer: str, offsets: list[int], start: int, end: int
    ) -> tuple[Inline, int] | None:
        if start + 2 >= end:
            return None
        i = start + 1
        while i < end and buffer[i] != ">":
            if buffer[i] in ASCII_WHITESPACE or buffer[i] == "<":
                return None
            i += 1
        if i >= end:
            return None
        inner = buffer[start + 1 : i]
        if is_autolink_scheme(inner):
            url = percent_encode_autolink_url(inner)
        elif is_autolink_email(inner):
            url = f"mailto:{inner}"
        else:
            return None
        child = Inline(self.span_from_offsets(offsets, start + 1, i), Text(inner))
        span = self.span_from_offsets(offsets, start, i + 1)
        return Inline(span, Link(url, None, [child])), i + 1

    def _html_span(self, buffer: str, offsets: list[int], start: int, end: int) -> tuple[Inline, int]:
        span = self.span_from_offsets(offsets, start, end)
        return Inline(span, HtmlSpan(buffer[start:end])), end

    def _parse_html_span(
        self, buffer: str, offsets: list[int], start: int, end: int
    ) -> tuple[Inline, int] | None:
        if start + 1 >= end:
            return None
        rest = buffer[start:end]

        if rest.startswith("<!--"):
            # Degenerate comments "<!-->" and "<!--->" are complete on their own
            if rest.startswith("<!-->"):
                return self._html_span(buffer, offsets, start, start + 5)
            if rest.startswith("<!--->"):
                return self._html_span(buffer, offsets, start, start + 6)
            close = buffer.find("-->", start + 4, end)
            if close < 0:
                return None
            return self._html_span(buffer, offsets, start, close + 3)
        if rest.startswith("<![CDATA["):
            close = buffer.find("]]>", start + 9, end)
            if close < 0:
                return None
            return self._html_span(buffer, offsets, start, close + 3)
        if rest.startswith("<!"):
            if len(rest) > 2 and rest[2].isascii() and rest[2].isalpha():
                close = buffer.find(">", start + 2, end)
                if close >= 0:
                    return self._html_span(buffer, offsets, start, close + 1)
            return None
        if rest.startswith("<?"):
            close = buffer.find("?>", start + 2, end)
            if close < 0:
                return None
            return self._html_span(buffer, offsets, start, close + 2)

        tag_end = scan_html_tag(buffer, start, end)
        if tag_end is None:
            return None
        return self._html_span(buffer, offsets, start, tag_end + 1)

    def _parse_reference(
        self, buffer: str, offsets: list[int], start: int, end: int
    ) -> tuple[Inline, int] | None:
        if start > 0:
            previous = buffer[start - 1]
            if previous.isalnum() or previous in "+-._":
                return None
            token_start = start
            while token_start > 0 and not buffer[token_start - 1].isspace():
                token_start -= 1
            token = buffer[token_start:start]
            # Path-like tokens such as "a/@b" are not references
            if "/" in token or "\\" in token:
                return None

        scanned = scan_label(buffer, start + 1, end)
        if scanned is None:
            return None
        name, label_end = scanned
        label = Label(name, self.span_from_offsets(offsets, start + 1, label_end))
        bracket = None
        next_index = label_end
        if label_end < end and buffer[label_end] == "[":
            found = find_bracket_end(buffer, label_end + 1, end)
            if found is not None:
                close, had_newline = found
                bracket = self._parse_range(buffer, offsets, label_end + 1, close)
                if had_newline:
                    span = self.span_from_offsets(offsets, start, close + 1)
                    self.sink.error(span, E_REF_BRACKET_NL, "newline in reference text")
                next_index = close + 1
        span = self.span_from_offsets(offsets, start, next_index)
        return Inline(span, Ref(label, bracket)), next_index

    def _try_close_link(
        self,
        buffer: str,
        offsets: list[int],
        end: int,
        current: int,
        out: list[Inline],
        delims: list[Delimiter],
        brackets: list[BracketEntry],
    ) -> int | None:
        opener_pos = next(
            (idx for idx in range(len(brackets) - 1, -1, -1) if brackets[idx].active), None
        )
        if opener_pos is None:
            return None
        opener = brackets[opener_pos]
        if opener.image:
            inactive_pos = next(
                (
                    idx
                    for idx in range(len(brackets) - 1, -1, -1)
                    if not brackets[idx].active and not brackets[idx].image
                ),
                None,
            )
            if inactive_pos is not None and inactive_pos > opener_pos:
                del brackets[inactive_pos]
                return None

        inline_link = parse_inline_link_destination(buffer, current + 1, end)
        reference = None
        if inline_link is not None:
            close = inline_link[2]
        else:
            next_index = current + 1
            label = None
            label_open_span = label_span = label_close_span = None
            if next_index < end and buffer[next_index] == "[":
                label_start = next_index + 1
                found = find_bracket_end(buffer, label_start, end)
                if found is None or found[1]:
                    return None
                label_end = found[0]
                label_open_span = self.span_from_offsets(offsets, next_index, next_index + 1)
                label_close_span = self.span_from_offsets(offsets, label_end, label_end + 1)
                if label_end > label_start:
                    label_span = self.span_from_offsets(offsets, label_start, label_end)
                label = buffer[label_start:label_end] or None
                next_index = label_end + 1

            content_start = opener.start + (2 if opener.image else 1)
            text_label = buffer[content_start:current] if current >= content_start else ""
            lookup = label or text_label
            if not lookup:
                return None
            if normalize_link_label(lookup) not in self.link_defs:
                del brackets[opener_pos]
                return None

            opener_len = 2 if opener.image else 1
            meta = LinkRefMeta(
                opener_span=self.span_from_offsets(offsets, opener.start, opener.start + opener_len),
                closer_span=self.span_from_offsets(offsets, current, current + 1),
                label_open_span=label_open_span,
                label_span=label_span,
                label_close_span=label_close_span,
            )
            reference = (lookup, meta)
            close = next_index - 1

        if opener.node_index >= len(out):
            return None
        span = self.span_from_offsets(offsets, opener.start, close + 1)
        children = out[opener.node_index + 1 :]
        del out[opener.node_index :]

        child_delims = []
        remaining = []
        for delim in delims:
            if delim.node_index > opener.node_index:
                delim.node_index -= opener.node_index + 1
                child_delims.append(delim)
            else:
                remaining.append(delim)
        delims[:] = remaining
        if child_delims:
            self._process_emphasis(children, child_delims)

        if reference is None:
            url, title, _ = inline_link
            kind = Image(url, title, children) if opener.image else Link(url, title, children)
        else:
            lookup, meta = reference
            if opener.image:
                kind = ImageRef(lookup, children, meta)
            else:
                kind = LinkRef(lookup, children, meta)
        out.append(Inline(span, kind))

        if not opener.image:
            # Links may not contain other links
            for entry in brackets:
                if not entry.image:
                    entry.active = False
        brackets[:] = [entry for entry in brackets if entry.node_index < opener.node_index]
        return close + 1

    def _process_emphasis(self, out: list[Inline], delims: list[Delimiter]) -> None:
        while True:
            closer_index = next((idx for idx, d in enumerate(delims) if d.can_close), None)
            if closer_index is None:
                return
            closer = delims[closer_index]
            opener_index = None
            use_len = 1
            for idx in range(closer_index - 1, -1, -1):
                opener = delims[idx]
                if opener.char != closer.char or not opener.can_open:
                    continue
                if opener.char == "~":
                    if opener.length < 2 or closer.length < 2:
                        continue
                    candidate = 2
                else:
                    candidate = 2 if opener.length >= 2 and closer.length >= 2 else 1
                    if candidate == 1 and delimiter_blocked(opener, closer):
                        continue
                opener_index = idx
                use_len = candidate
                break
            if opener_index is None:
                closer.can_close = False
                continue
            self._apply_emphasis(out, delims, opener_index, closer_index, use_len)

    def _apply_emphasis(
        self,
        out: list[Inline],
        delims: list[Delimiter],
        opener_index: int,
        closer_index: int,
        use_len: int,
    ) -> None:
        opener = delims[opener_index]
        closer = delims[closer_index]
        if opener.node_index >= closer.node_index:
            # Unreachable for well-formed stacks; drop the closer to guarantee progress
            closer.can_close = False
            return
        limit = self.sink.limit
        removed = out[opener.node_index : closer.node_index + 1]
        opener_node = removed[0]
        closer_node = removed[-1]
        children = removed[1:-1]

        opener_remain = max(opener.length - use_len, 0)
        closer_remain = max(closer.length - use_len, 0)
        opener_start = opener_node.span.start
        closer_end = closer_node.span.end
        # Split points stay inside the delimiter nodes even when offsets repeat
        opener_split = min(opener_start + opener_remain, opener_node.span.end)
        closer_split = max(closer_end - closer_remain, closer_node.span.start)

        replacement = []
        if opener_remain:
            span = Span.clamped(opener_start, opener_split, limit)
            replacement.append(Inline(span, Text(opener.char * opener_remain)))
        if opener.char == "~":
            kind = Strikethrough(children)
        elif use_len == 2:
            kind = Strong(children)
        else:
            kind = Emph(children)
        replacement.append(Inline(Span.clamped(opener_split, closer_split, limit), kind))
        if closer_remain:
            span = Span.clamped(closer_split, closer_end, limit)
            replacement.append(Inline(span, Text(closer.char * closer_remain)))
        out[opener.node_index : closer.node_index + 1] = replacement

        delta = len(replacement) - len(removed)
        updated = []
        for idx, delim in enumerate(delims):
            if idx in (opener_index, closer_index):
                continue
            if delim.node_index < opener.node_index:
                updated.append(delim)
            elif delim.node_index > closer.node_index:
                delim.node_index += delta
                updated.append(delim)

        next_index = opener.node_index
        if opener_remain:
            opener.length = opener_remain
            updated.append(opener)
            next_index += 1
        next_index += 1
        if closer_remain:
            closer.length = closer_remain
            closer.node_index = next_index
            updated.append(closer)
        updated.sort(key=lambda delim: delim.node_index)
        delims[:] = updated


def autolink_inlines(inlines: list[Inline]) -> list[Inline]:
    """Turn bare ``http(s)://``, ``www.`` and e-mail literals in text into links."""
    out: list[Inline] = []
    for inline in inlines:
        kind = inline.kind
        if isinstance(kind, Text):
            out.extend(split_autolinks(kind.text, inline.span))
        elif isinstance(kind, (Emph, Strong, Strikethrough)):
            kind.children = autolink_inlines(kind.children)
            out.append(inline)
        else:
            out.append(inline)
    return out


@dataclass
class AutolinkLiteral:
    start: int
    end: int
    url: str
    display: str


def split_autolinks(text: str, span: Span) -> list[Inline]:
    out: list[Inline] = []

    def sub_span(start: int, end: int) -> Span:
        return Span(min(span.start + start, span.end), min(span.start + end, span.end))

    i = 0
    last = 0
    while i < len(text):
        literal = match_autolink_literal(text, i)
        if literal is None:
            i += 1
            continue
        if literal.start > last:
            out.append(Inline(sub_span(last, literal.start), Text(text[last : literal.start])))
        link_span = sub_span(literal.start, literal.end)
        child = Inline(link_span, Text(literal.display))
        out.append(Inline(link_span, Link(literal.url, None, [child])))
        i = last = literal.end
    if last < len(text):
        out.append(Inline(sub_span(last, len(text)), Text(text[last:])))
    return out


def _is_autolink_boundary(previous: str | None) -> bool:
    return previous is None or previous in ASCII_WHITESPACE or previous in AUTOLINK_BOUNDARY


def _scan_literal_end(text: str, start: int) -> int:
    end = start
    while end < len(text) and text[end] not in ASCII_WHITESPACE and text[end] not in AUTOLINK_STOP:
        end += 1
    return end


def _trim_unbalanced(text: str, start: int, end: int, open_char: str, close_char: str) -> int:
    segment = text[start:end]
    open_count = segment.count(open_char)
    close_count = segment.count(close_char)
    while end > start and text[end - 1] == close_char and close_count > open_count:
        end -= 1
        close_count -= 1
    return end


def _trim_autolink_punct(text: str, start: int, end: int) -> int:
    while end > start and text[end - 1] in AUTOLINK_TRAILING_PUNCT:
        end -= 1
    for open_char, close_char in ("()", "[]", "{}"):
        if end > start and text[end - 1] == close_char:
            end = _trim_unbalanced(text, start, end, open_char, close_char)
    return end


def match_autolink_literal(text: str, start: int) -> AutolinkLiteral | None:
    """Match a bare autolink at `start`.

    Examples:
        match_autolink_literal("see www.example.com.", 4).url
        # "http://www.example.com"
    """
    previous = text[start - 1] if start > 0 else None
    if not _is_autolink_boundary(previous):
        return None
    rest = text[start:]
    if rest.startswith(("http://", "https://")):
        end = _trim_autolink_punct(text, start, _scan_literal_end(text, start))
        if end <= start:
            return None
        display = text[start:end]
        return AutolinkLiteral(start, end, display, display)
    if rest.startswith("www."):
        end = _trim_autolink_punct(text, start, _scan_literal_end(text, start))
        if end <= start + 4 or "." not in text[start + 4 : end]:
            return None
        display = text[start:end]
        return AutolinkLiteral(start, end, f"http://{display}", display)
    raw_end = _scan_literal_end(text, start)
    if raw_end == start:
        return None
    end = _trim_autolink_punct(text, start, raw_end)
    candidate = text[start:end]
    if is_autolink_email(candidate):
        return AutolinkLiteral(start, end, f"mailto:{candidate}", candidate)
    return None


def take_task_marker(content: list[Inline]) -> bool | None:
    """Strip a leading ``[ ]``/``[x]`` task marker from paragraph content.

    Returns:
        bool | None: True for checked, False for unchecked, None when the
            content does not start with a marker (the content is unchanged).
    """
    prefix = ""
    for inline in content:
        if not isinstance(inline.kind, Text):
            return None
        prefix += inline.kind.text[: 4 - len(prefix)]
        if len(prefix) == 4:
            break
    if len(prefix) < 4 or prefix[0] != "[" or prefix[2] != "]" or prefix[3] not in " \t":
        return None
    if prefix[1] == " ":
        checked = False
    elif prefix[1] in "xX":
        checked = True
    else:
        return None

    remaining = 4
    while remaining and content:
        inline = content[0]
        text = inline.kind.text
        remove_len = min(remaining, len(text))
        remaining -= remove_len
        if remove_len == len(text):
            del content[0]
        else:
            inline.kind.text = text[remove_len:]
            inline.span = Span(min(inline.span.start + remove_len, inline.span.end), inline.span.end)
    return checked


def detect_task_marker(blocks: list[Block]) -> bool | None:
    if not blocks or not isinstance(blocks[0].kind, Paragraph):
        return None
    return take_task_marker(blocks[0].kind.content)
