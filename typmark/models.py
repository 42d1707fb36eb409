"""Document tree produced by the parser and rewritten by the resolver.

Blocks and inlines are ``(span, kind)`` pairs: the wrapper carries the source
span (and, for blocks, the attribute list) while the kind dataclass carries the
variant-specific payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from .span import Span


@dataclass
class Label:
    """Block, title, or code-line label.

    Attributes:
        name: Label name made of ``[A-Za-z0-9_-]``; case-sensitive.
        span: Location of the name in the source.
    """

    name: str
    span: Span


@dataclass
class AttrValue:
    """Value side of a ``key=value`` attribute item.

    Attributes:
        raw: Value text with surrounding quotes removed.
        span: Location of the value text.
        quoted: Whether the value was written in double quotes.
    """

    raw: str
    span: Span
    quoted: bool = False


@dataclass
class AttrItem:
    key: str
    value: AttrValue


@dataclass
class AttrList:
    """Attribute list written as ``{#label key=value ...}``.

    Attributes:
        span: Location of the braces, when the list came from the source.
        label: Optional ``#label``.
        items: ``key=value`` pairs in source order.
    """

    span: Span | None = None
    label: Label | None = None
    items: list[AttrItem] = field(default_factory=list)

    def get(self, key: str) -> str | None:
        """Return the raw value of the first item named `key`, if any."""
        for item in self.items:
            if item.key == key:
                return item.value.raw
        return None

    def is_empty(self) -> bool:
        return self.label is None and not self.items


@dataclass
class LinkDefinition:
    url: str
    title: str | None = None


@dataclass
class LinkRefMeta:
    """Delimiter spans of a reference link, kept to rebuild unresolved text.

    Attributes:
        opener_span: The ``[`` or ``![`` that opened the link text.
        closer_span: The ``]`` that closed the link text.
        label_open_span: The ``[`` of a trailing ``[label]``, if present.
        label_span: The text between the label brackets, if non-empty.
        label_close_span: The ``]`` of a trailing ``[label]``, if present.
    """

    opener_span: Span
    closer_span: Span
    label_open_span: Span | None = None
    label_span: Span | None = None
    label_close_span: Span | None = None


# Resolved reference targets


@dataclass
class ResolvedBlock:
    label: str
    display: list[Inline] | None = None


@dataclass
class ResolvedCodeLine:
    label: str


ResolvedRef = ResolvedBlock | ResolvedCodeLine


# Inline kinds


@dataclass
class Text:
    text: str


@dataclass
class Emph:
    children: list[Inline]


@dataclass
class Strong:
    children: list[Inline]


@dataclass
class Strikethrough:
    children: list[Inline]


@dataclass
class CodeSpan:
    code: str


@dataclass
class SoftBreak:
    pass


@dataclass
class HardBreak:
    pass


@dataclass
class Link:
    url: str
    title: str | None
    children: list[Inline]


@dataclass
class Image:
    url: str
    title: str | None
    alt: list[Inline]


@dataclass
class LinkRef:
    label: str
    children: list[Inline]
    meta: LinkRefMeta


@dataclass
class ImageRef:
    label: str
    alt: list[Inline]
    meta: LinkRefMeta


@dataclass
class Ref:
    """Cross-reference ``@label`` with optional ``[bracket text]``.

    Attributes:
        label: Referenced label and the span of its name.
        bracket: Explicit display text, when written.
        resolved: Target filled in by the resolver.
    """

    label: Label
    bracket: list[Inline] | None = None
    resolved: ResolvedRef | None = None


@dataclass
class MathInline:
    typst_src: str


@dataclass
class HtmlSpan:
    raw: str


InlineKind = (
    Text
    | Emph
    | Strong
    | Strikethrough
    | CodeSpan
    | SoftBreak
    | HardBreak
    | Link
    | Image
    | LinkRef
    | ImageRef
    | Ref
    | MathInline
    | HtmlSpan
)


@dataclass
class Inline:
    span: Span
    kind: InlineKind


# Block kinds


@dataclass
class LineRange:
    """Inclusive, one-based range of code lines."""

    start: int
    end: int

    def contains(self, line: int) -> bool:
        return self.start <= line <= self.end


@dataclass
class LineLabel:
    line: int
    label: Label


@dataclass
class CodeMeta:
    """Per-line annotations of a code block.

    Line numbers are one-based and count blank lines.

    Attributes:
        hl: Highlighted ranges.
        diff_add: Ranges marked as added.
        diff_del: Ranges marked as removed.
        line_labels: Labels attached to single lines.
    """

    hl: list[LineRange] = field(default_factory=list)
    diff_add: list[LineRange] = field(default_factory=list)
    diff_del: list[LineRange] = field(default_factory=list)
    line_labels: list[LineLabel] = field(default_factory=list)


class CodeBlockKind(Enum):
    FENCED = auto()
    INDENTED = auto()


class TableAlign(Enum):
    NONE = auto()
    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()


@dataclass
class Paragraph:
    content: list[Inline]


@dataclass
class Heading:
    level: int
    title: list[Inline]


@dataclass
class Section:
    """Heading folded together with the blocks it owns.

    Attributes:
        level: Heading level, 1 to 6.
        title: Heading text.
        label: Label copied from the heading attributes.
        children: Blocks up to the next heading of the same or higher rank.
    """

    level: int
    title: list[Inline]
    label: Label | None
    children: list[Block]


@dataclass
class ListItem:
    """Single list item.

    Attributes:
        span: Source span from the marker to the last item line.
        blocks: Item content.
        task: None for plain items, False/True for unchecked/checked tasks.
    """

    span: Span
    blocks: list[Block]
    task: bool | None = None


@dataclass
class ListBlock:
    ordered: bool
    start: int | None
    tight: bool
    items: list[ListItem]


@dataclass
class BlockQuote:
    blocks: list[Block]


@dataclass
class CodeBlock:
    kind: CodeBlockKind
    lang: str | None
    info_attrs: AttrList
    meta: CodeMeta
    text: str


@dataclass
class BoxBlock:
    title: list[Inline] | None
    blocks: list[Block]


@dataclass
class MathBlock:
    typst_src: str


@dataclass
class ThematicBreak:
    pass


@dataclass
class HtmlBlock:
    raw: str


@dataclass
class Table:
    headers: list[list[Inline]]
    aligns: list[TableAlign]
    rows: list[list[list[Inline]]]


BlockKind = (
    Paragraph
    | Heading
    | Section
    | ListBlock
    | BlockQuote
    | CodeBlock
    | BoxBlock
    | MathBlock
    | ThematicBreak
    | HtmlBlock
    | Table
)


@dataclass
class Block:
    span: Span
    kind: BlockKind
    attrs: AttrList = field(default_factory=AttrList)


@dataclass
class Document:
    """Root of the tree.

    Attributes:
        span: Always ``[0, len(source))``.
        blocks: Top-level blocks.
        settings: Unlabelled attribute list from a leading target line.
    """

    span: Span
    blocks: list[Block]
    settings: AttrList | None = None


def child_blocks(block: Block) -> list[Block]:
    """Return the nested blocks of a container block, in source order."""
    kind = block.kind
    if isinstance(kind, Section):
        return kind.children
    if isinstance(kind, (BlockQuote, BoxBlock)):
        return kind.blocks
    if isinstance(kind, ListBlock):
        return [child for item in kind.items for child in item.blocks]
    return []


def inline_children(inline: Inline) -> list[Inline]:
    """Return the nested inlines of a container inline."""
    kind = inline.kind
    if isinstance(kind, (Emph, Strong, Strikethrough, Link, LinkRef)):
        return kind.children
    if isinstance(kind, (Image, ImageRef)):
        return kind.alt
    if isinstance(kind, Ref) and kind.bracket is not None:
        return kind.bracket
    return []
