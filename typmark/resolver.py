"""Reference resolution over a parsed document.

Resolution runs in a fixed order: link references are bound to their
definitions, headings are folded into sections, labels are indexed, titles
are checked for self references, and finally every ``@label`` reference is
bound to its target.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from .diagnostics import (
    E_LABEL_DUP,
    E_REF_DEPTH,
    E_REF_OMIT,
    E_REF_SELF_TITLE,
    W_REF_MISSING,
    Diagnostic,
    DiagnosticSink,
    RelatedDiagnostic,
    Severity,
)
from .labels import normalize_link_label
from .models import (
    Block,
    BlockQuote,
    BoxBlock,
    CodeBlock,
    CodeSpan,
    Document,
    Emph,
    HardBreak,
    Heading,
    HtmlSpan,
    Image,
    ImageRef,
    Inline,
    Label,
    Link,
    LinkDefinition,
    LinkRef,
    LinkRefMeta,
    ListBlock,
    MathInline,
    Paragraph,
    Ref,
    ResolvedBlock,
    ResolvedCodeLine,
    Section,
    SoftBreak,
    Strikethrough,
    Strong,
    Table,
    Text,
)
from .sections import build_sections
from .source_map import SourceMap
from .span import Span
from .text import unescape_backslash_punct

logger = logging.getLogger(__name__)

MAX_REFERENCE_DEPTH = 100


class LabelKind(Enum):
    """What a label is attached to.

    Attributes:
        TITLE: A section or a titled box; references may omit their text.
        BLOCK: Any other labeled block.
        CODE_LINE: A single line of a code block.
    """

    TITLE = "title"
    BLOCK = "block"
    CODE_LINE = "code_line"


@dataclass
class LabelInfo:
    span: Span
    kind: LabelKind
    title: list[Inline] | None = None


@dataclass
class ResolveResult:
    """Output of `resolve`.

    Attributes:
        document: The document with sections folded and references bound.
        diagnostics: Parse diagnostics followed by resolution diagnostics.
    """

    document: Document
    diagnostics: list[Diagnostic]


def block_inline_sequences(block: Block) -> Iterator[list[Inline]]:
    """Yield the inline sequences owned directly by `block`."""
    kind = block.kind
    if isinstance(kind, Paragraph):
        yield kind.content
    elif isinstance(kind, (Heading, Section)):
        yield kind.title
    elif isinstance(kind, BoxBlock) and kind.title is not None:
        yield kind.title
    elif isinstance(kind, Table):
        yield from kind.headers
        for row in kind.rows:
            yield from row


def walk_blocks(blocks: list[Block]) -> Iterator[Block]:
    """Yield `blocks` and all nested blocks, depth first in source order."""
    for block in blocks:
        yield block
        kind = block.kind
        if isinstance(kind, ListBlock):
            for item in kind.items:
                yield from walk_blocks(item.blocks)
        elif isinstance(kind, (BlockQuote, BoxBlock)):
            yield from walk_blocks(kind.blocks)
        elif isinstance(kind, Section):
            yield from walk_blocks(kind.children)


def resolve(
    document: Document,
    source: str,
    source_map: SourceMap,
    diagnostics: list[Diagnostic],
    link_defs: dict[str, LinkDefinition],
) -> ResolveResult:
    """Bind link references and cross-references.

    Never raises on malformed input; every problem becomes a diagnostic.

    Args:
        document: Parsed document; modified in place.
        source: The decoded source the document was parsed from.
        source_map: Map of `source`.
        diagnostics: Diagnostics produced by the parser.
        link_defs: Link reference definitions from the parser.

    Returns:
        ResolveResult: The resolved document and the accumulated diagnostics.

    Examples:
        parsed = parse("{#a}\\n# Intro\\n\\nSee @a.")
        result = resolve(parsed.document, source, parsed.source_map,
                         parsed.diagnostics, parsed.link_defs)
    """
    sink = DiagnosticSink(source_map, diagnostics)

    for block in walk_blocks(document.blocks):
        for inlines in block_inline_sequences(block):
            resolve_link_refs(inlines, source, link_defs)

    document.blocks = build_sections(document.blocks)

    labels: dict[str, LabelInfo] = {}
    _collect_labels(document.blocks, labels, sink)
    _check_self_reference_titles(document.blocks, sink)
    for block in walk_blocks(document.blocks):
        for inlines in block_inline_sequences(block):
            _resolve_inlines(inlines, labels, sink)

    logger.debug("Resolved %d labels, %d diagnostics", len(labels), len(sink.diagnostics))
    return ResolveResult(document, sink.diagnostics)


def resolve_link_refs(
    inlines: list[Inline], source: str, link_defs: dict[str, LinkDefinition]
) -> None:
    """Replace `LinkRef`/`ImageRef` nodes with links, or with literal text when undefined."""
    idx = 0
    while idx < len(inlines):
        inline = inlines[idx]
        kind = inline.kind
        if isinstance(kind, (LinkRef, ImageRef)):
            image = isinstance(kind, ImageRef)
            children = kind.alt if image else kind.children
            resolve_link_refs(children, source, link_defs)
            definition = link_defs.get(normalize_link_label(kind.label))
            if definition is None:
                fallback = build_link_ref_fallback(kind.meta, children, image, source)
                inlines[idx : idx + 1] = fallback
                idx += len(fallback)
                continue
            if image:
                inline.kind = Image(definition.url, definition.title, children)
            else:
                inline.kind = Link(definition.url, definition.title, children)
        elif isinstance(kind, (Emph, Strong, Strikethrough, Link)):
            resolve_link_refs(kind.children, source, link_defs)
        elif isinstance(kind, Image):
            resolve_link_refs(kind.alt, source, link_defs)
        elif isinstance(kind, Ref) and kind.bracket is not None:
            resolve_link_refs(kind.bracket, source, link_defs)
        idx += 1


def build_link_ref_fallback(
    meta: LinkRefMeta, children: list[Inline], image: bool, source: str
) -> list[Inline]:
    """Rebuild ``[text][label]`` as literal text around the parsed children."""
    out = [Inline(meta.opener_span, Text("![" if image else "["))]
    out.extend(children)
    out.append(Inline(meta.closer_span, Text("]")))
    if meta.label_open_span is not None and meta.label_close_span is not None:
        out.append(Inline(meta.label_open_span, Text("[")))
        if meta.label_span is not None:
            raw = source[meta.label_span.start : meta.label_span.end]
            out.append(Inline(meta.label_span, Text(unescape_backslash_punct(raw))))
        out.append(Inline(meta.label_close_span, Text("]")))
    return out


def _insert_label(
    labels: dict[str, LabelInfo],
    label: Label,
    kind: LabelKind,
    title: list[Inline] | None,
    sink: DiagnosticSink,
) -> None:
    existing = labels.get(label.name)
    if existing is not None:
        related = [RelatedDiagnostic(sink.source_map.range(existing.span))]
        sink.push(label.span, Severity.ERROR, E_LABEL_DUP, "duplicate label", related)
        return
    labels[label.name] = LabelInfo(label.span, kind, title)


def _collect_labels(blocks: list[Block], labels: dict[str, LabelInfo], sink: DiagnosticSink) -> None:
    for block in walk_blocks(blocks):
        kind = block.kind
        label = block.attrs.label
        if label is not None:
            if isinstance(kind, Section):
                _insert_label(labels, label, LabelKind.TITLE, kind.title, sink)
            elif isinstance(kind, BoxBlock) and kind.title is not None:
                _insert_label(labels, label, LabelKind.TITLE, kind.title, sink)
            else:
                _insert_label(labels, label, LabelKind.BLOCK, None, sink)
        if isinstance(kind, CodeBlock):
            for line_label in kind.meta.line_labels:
                _insert_label(labels, line_label.label, LabelKind.CODE_LINE, None, sink)


def find_self_ref(inlines: list[Inline], label: str) -> Span | None:
    """Return the span of the first reference to `label` within `inlines`."""
    for inline in inlines:
        kind = inline.kind
        if isinstance(kind, Ref):
            if kind.label.name == label:
                return inline.span
            nested = kind.bracket or []
        elif isinstance(kind, (Emph, Strong, Strikethrough, Link, LinkRef)):
            nested = kind.children
        elif isinstance(kind, (Image, ImageRef)):
            nested = kind.alt
        else:
            continue
        span = find_self_ref(nested, label)
        if span is not None:
            return span
    return None


def _check_self_reference_titles(blocks: list[Block], sink: DiagnosticSink) -> None:
    for block in walk_blocks(blocks):
        kind = block.kind
        label = block.attrs.label
        if label is None:
            continue
        if isinstance(kind, Section) or (isinstance(kind, BoxBlock) and kind.title is not None):
            span = find_self_ref(kind.title, label.name)
            if span is not None:
                sink.error(span, E_REF_SELF_TITLE, "self-reference in title")


def _resolve_inlines(inlines: list[Inline], labels: dict[str, LabelInfo], sink: DiagnosticSink) -> None:
    for inline in inlines:
        kind = inline.kind
        if isinstance(kind, Ref):
            _resolve_ref(inline, kind, labels, sink)
        elif isinstance(kind, (Emph, Strong, Strikethrough, Link, LinkRef)):
            _resolve_inlines(kind.children, labels, sink)
        elif isinstance(kind, (Image, ImageRef)):
            _resolve_inlines(kind.alt, labels, sink)


def _resolve_ref(inline: Inline, ref: Ref, labels: dict[str, LabelInfo], sink: DiagnosticSink) -> None:
    info = labels.get(ref.label.name)
    if info is None:
        sink.warning(inline.span, W_REF_MISSING, "reference target not found")
        return

    if ref.bracket is None and info.kind is not LabelKind.TITLE:
        sink.error(inline.span, E_REF_OMIT, "missing reference text for non-title target")

    if info.kind is LabelKind.CODE_LINE:
        ref.resolved = ResolvedCodeLine(ref.label.name)
        return

    display = None
    if ref.bracket is None and info.kind is LabelKind.TITLE:
        display, exceeded = build_reference_text(ref.label.name, labels, info.span)
        if exceeded:
            sink.error(inline.span, E_REF_DEPTH, "reference display text depth exceeded")
    ref.resolved = ResolvedBlock(ref.label.name, display)


def build_reference_text(
    label: str, labels: dict[str, LabelInfo], fallback_span: Span
) -> tuple[list[Inline], bool]:
    """Expand the title of `label` into display inlines.

    Nested references without text are expanded recursively. A cycle or a
    depth over `MAX_REFERENCE_DEPTH` stops the expansion at the label name.

    Returns:
        tuple[list[Inline], bool]: The display inlines and whether expansion
            was cut short.
    """
    return _expand_label(label, labels, 0, set(), fallback_span)


def _expand_label(
    label: str, labels: dict[str, LabelInfo], depth: int, visited: set[str], fallback_span: Span
) -> tuple[list[Inline], bool]:
    info = labels.get(label)
    span = info.span if info is not None else fallback_span
    if depth > MAX_REFERENCE_DEPTH or label in visited:
        return [Inline(span, Text(label))], True
    if info is None or info.title is None:
        return [Inline(span, Text(label))], False
    visited.add(label)
    result = _expand_inlines(info.title, labels, depth + 1, visited)
    visited.discard(label)
    return result


def _expand_inlines(
    inlines: list[Inline], labels: dict[str, LabelInfo], depth: int, visited: set[str]
) -> tuple[list[Inline], bool]:
    out: list[Inline] = []
    exceeded = False
    for inline in inlines:
        kind = inline.kind
        if isinstance(kind, (Text, CodeSpan, MathInline, SoftBreak, HardBreak)):
            out.append(copy.deepcopy(inline))
        elif isinstance(kind, (Emph, Strong, Strikethrough)):
            inner, inner_exceeded = _expand_inlines(kind.children, labels, depth, visited)
            exceeded |= inner_exceeded
            out.append(Inline(inline.span, type(kind)(inner)))
        elif isinstance(kind, (Link, LinkRef, Image, ImageRef)):
            # Links are flattened to their text
            children = kind.alt if isinstance(kind, (Image, ImageRef)) else kind.children
            inner, inner_exceeded = _expand_inlines(children, labels, depth, visited)
            exceeded |= inner_exceeded
            out.extend(inner)
        elif isinstance(kind, Ref):
            if kind.bracket is not None:
                inner, inner_exceeded = _expand_inlines(kind.bracket, labels, depth, visited)
            else:
                inner, inner_exceeded = _expand_label(
                    kind.label.name, labels, depth + 1, visited, inline.span
                )
            exceeded |= inner_exceeded
            out.extend(inner)
        elif isinstance(kind, HtmlSpan):
            out.append(Inline(inline.span, Text(kind.raw)))
    return out, exceeded
