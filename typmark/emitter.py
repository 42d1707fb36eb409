"""HTML emission for resolved TypMark documents.

The emitter writes one tag per line, indented two spaces per nesting level,
and never raises on well-formed trees: math failures degrade to escaped
source placeholders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto

from .exceptions import MathRenderError
from .math import MathRenderer, MathSettings, math_settings_from_attrs, prefix_svg_ids
from .models import (
    AttrItem,
    Block,
    BlockQuote,
    BoxBlock,
    CodeBlock,
    CodeBlockKind,
    CodeSpan,
    Document,
    Emph,
    HardBreak,
    Heading,
    HtmlBlock,
    HtmlSpan,
    Image,
    ImageRef,
    Inline,
    Label,
    LineRange,
    Link,
    LinkRef,
    ListBlock,
    ListItem,
    MathBlock,
    MathInline,
    Paragraph,
    Ref,
    ResolvedBlock,
    Section,
    SoftBreak,
    Strikethrough,
    Strong,
    Table,
    TableAlign,
    Text,
    ThematicBreak,
)
from .source_map import SourceMap
from .span import Span
from .text import escape_html

logger = logging.getLogger(__name__)

_URL_ESCAPES = {" ": "%20", "`": "%60", "\\": "%5C", '"': "%22"}

_ALIGN_NAMES = {
    TableAlign.LEFT: "left",
    TableAlign.CENTER: "center",
    TableAlign.RIGHT: "right",
}


@dataclass
class HtmlEmitOptions:
    """Switches controlling the emitted markup.

    Attributes:
        wrap_sections: Wrap each section in ``<section>``; when off, sections
            flatten back to a heading followed by their children.
        simple_code_blocks: Emit fenced code as plain ``<pre><code>`` instead
            of the per-line ``<figure>`` form.
    """

    wrap_sections: bool = True
    simple_code_blocks: bool = False


class RenderContext(Enum):
    NORMAL = auto()
    TITLE = auto()
    REFERENCE_TEXT = auto()


def escape_url_attr(url: str) -> str:
    """Percent-encode characters unsafe in an ``href`` or ``src`` value.

    Spaces, backticks, backslashes, double quotes, control characters and
    non-ASCII characters (as UTF-8 bytes) are encoded; the result is then
    attribute-escaped.

    Args:
        url: Destination as written in the tree.

    Returns:
        str: Value ready to be placed between double quotes.

    Examples:
        escape_url_attr("a b&c")  # "a%20b&amp;c"
    """
    out: list[str] = []
    for char in url:
        if char in _URL_ESCAPES:
            out.append(_URL_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) >= 0x7F:
            out.extend(f"%{byte:02X}" for byte in char.encode("utf-8", "surrogatepass"))
        else:
            out.append(char)
    return escape_html("".join(out))


def render_inlines_text(inlines: list[Inline]) -> str:
    """Flatten inlines to plain text, as used for image ``alt`` values."""
    out: list[str] = []
    for inline in inlines:
        kind = inline.kind
        if isinstance(kind, Text):
            out.append(kind.text)
        elif isinstance(kind, CodeSpan):
            out.append(kind.code)
        elif isinstance(kind, MathInline):
            out.append(kind.typst_src)
        elif isinstance(kind, (SoftBreak, HardBreak)):
            out.append("\n")
        elif isinstance(kind, Ref):
            if kind.bracket is not None:
                out.append(render_inlines_text(kind.bracket))
            else:
                out.append(kind.label.name)
        elif isinstance(kind, (Emph, Strong, Strikethrough, Link, LinkRef)):
            out.append(render_inlines_text(kind.children))
        elif isinstance(kind, (Image, ImageRef)):
            out.append(render_inlines_text(kind.alt))
        elif isinstance(kind, HtmlSpan):
            out.append(kind.raw)
    return "".join(out)


def split_lines_preserve(text: str) -> list[str]:
    """Split code text into display lines, dropping a trailing ``\\r`` on each."""
    if not text:
        return [""]
    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def _in_ranges(line: int, ranges: list[LineRange]) -> bool:
    return any(line_range.contains(line) for line_range in ranges)


def _data_attrs(items: list[AttrItem]) -> str:
    return "".join(
        f' data-{escape_html(item.key)}="{escape_html(item.value.raw)}"' for item in items
    )


def _id_attr(label: Label | None) -> str:
    if label is None:
        return ""
    return f' id="{escape_html(label.name)}"'


def _task_input(checked: bool) -> str:
    if checked:
        return '<input type="checkbox" disabled="" checked="" /> '
    return '<input type="checkbox" disabled="" /> '


class HtmlWriter:
    """Accumulates emitted HTML and the state shared across one document.

    Args:
        options: Markup switches.
        source_map: When given, tags carry ``data-tm-range`` attributes.
        settings: Math size and font options.
        math_renderer: Renderer for math; None renders error placeholders.
    """

    def __init__(
        self,
        options: HtmlEmitOptions,
        source_map: SourceMap | None = None,
        settings: MathSettings | None = None,
        math_renderer: MathRenderer | None = None,
    ):
        self.options = options
        self.source_map = source_map
        self.settings = settings or MathSettings()
        self.math_renderer = math_renderer
        self.math_counter = 0
        self.indent = 0
        self._parts: list[str] = []

    def write(self, text: str) -> None:
        self._parts.append(text)

    def write_indent(self) -> None:
        self._parts.append("  " * self.indent)

    def line(self, text: str) -> None:
        self._parts.append(f"{'  ' * self.indent}{text}\n")

    def finish(self) -> str:
        return "".join(self._parts).rstrip("\n")

    # Attributes

    def span_attr(self, span: Span) -> str:
        if self.source_map is None:
            return ""
        text_range = self.source_map.range(span)
        start, end = text_range.start, text_range.end
        return f' data-tm-range="{start.line}:{start.character}-{end.line}:{end.character}"'

    def block_attrs(self, block: Block, label: Label | None = None) -> str:
        if label is None:
            label = block.attrs.label
        return _id_attr(label) + self.span_attr(block.span) + _data_attrs(block.attrs.items)

    # Math

    def render_math(self, source: str, display: bool) -> str | None:
        """Render one math snippet, returning None when it cannot be rendered."""
        self.math_counter += 1
        if self.math_renderer is None:
            return None
        try:
            svg = self.math_renderer.render(source, display, self.settings)
        except MathRenderError as error:
            logger.debug("Math rendered as placeholder: %s", error)
            return None
        return prefix_svg_ids(svg, f"tm-m{self.math_counter}")

    # Blocks

    def emit_blocks(self, blocks: list[Block]) -> None:
        for block in blocks:
            self.emit_block(block)

    def emit_block(self, block: Block) -> None:
        kind = block.kind
        if isinstance(kind, Paragraph):
            content = self.render_inlines(kind.content)
            self.line(f"<p{self.block_attrs(block)}>{content}</p>")
        elif isinstance(kind, Heading):
            title = self.render_inlines(kind.title, RenderContext.TITLE)
            self.line(f"<h{kind.level}{self.block_attrs(block)}>{title}</h{kind.level}>")
        elif isinstance(kind, Section):
            self._emit_section(block, kind, tight=False)
        elif isinstance(kind, ListBlock):
            self._emit_list(block, kind)
        elif isinstance(kind, BlockQuote):
            self.line(f"<blockquote{self.block_attrs(block)}>")
            self.indent += 1
            self.emit_blocks(kind.blocks)
            self.indent -= 1
            self.line("</blockquote>")
        elif isinstance(kind, CodeBlock):
            self._emit_code_block(block, kind)
        elif isinstance(kind, BoxBlock):
            self._emit_box(block, kind)
        elif isinstance(kind, MathBlock):
            attrs = self.block_attrs(block)
            svg = self.render_math(kind.typst_src, display=True)
            if svg is None:
                source = escape_html(kind.typst_src)
                self.line(f'<div class="TypMark-math-block--error"{attrs}>{source}</div>')
            else:
                self.line(f'<div class="TypMark-math-block"{attrs}>{svg}</div>')
        elif isinstance(kind, ThematicBreak):
            self.line(f"<hr{self.block_attrs(block)} />")
        elif isinstance(kind, HtmlBlock):
            attrs = self.block_attrs(block)
            if not attrs:
                self.line(kind.raw)
            else:
                self.line(f'<div class="TypMark-html" data-typmark="html"{attrs}>')
                self.indent += 1
                self.line(kind.raw)
                self.indent -= 1
                self.line("</div>")
        elif isinstance(kind, Table):
            self._emit_table(block, kind)

    def emit_block_tight(self, block: Block) -> bool:
        """Emit a block inside a tight list item.

        Returns:
            bool: True when the output ends with a newline.
        """
        kind = block.kind
        if isinstance(kind, Paragraph):
            content = self.render_inlines(kind.content)
            self.write_indent()
            self.write(content)
            return False
        if isinstance(kind, Section):
            return self._emit_section(block, kind, tight=True)
        self.emit_block(block)
        return True

    def _emit_children(self, children: list[Block], tight: bool) -> bool:
        if not tight:
            self.emit_blocks(children)
            return True
        last_ended = True
        for index, child in enumerate(children):
            ended = self.emit_block_tight(child)
            if not ended and index + 1 < len(children):
                self.write("\n")
            last_ended = ended
        return last_ended

    def _emit_section(self, block: Block, section: Section, tight: bool) -> bool:
        attrs = self.block_attrs(block, section.label)
        title = self.render_inlines(section.title, RenderContext.TITLE)
        level = section.level
        if not self.options.wrap_sections:
            self.line(f"<h{level}{attrs}>{title}</h{level}>")
            return self._emit_children(section.children, tight)

        self.line(f"<section{attrs}>")
        self.indent += 1
        self.line(f"<h{level}>{title}</h{level}>")
        if not self._emit_children(section.children, tight):
            self.write("\n")
        self.indent -= 1
        self.line("</section>")
        return True

    def _emit_list(self, block: Block, list_block: ListBlock) -> None:
        tag = "ol" if list_block.ordered else "ul"
        start_attr = ""
        if list_block.ordered and list_block.start is not None and list_block.start != 1:
            start_attr = f' start="{list_block.start}"'
        has_tasks = any(item.task is not None for item in list_block.items)
        list_class = ' class="task-list"' if has_tasks else ""

        self.line(f"<{tag}{self.block_attrs(block)}{start_attr}{list_class}>")
        self.indent += 1
        for item in list_block.items:
            self._emit_list_item(item, list_block.tight)
        self.indent -= 1
        self.line(f"</{tag}>")

    def _emit_list_item(self, item: ListItem, tight: bool) -> None:
        task_class = ' class="task-list-item"' if item.task is not None else ""
        prefix = _task_input(item.task) if item.task is not None else ""
        item_attrs = task_class + self.span_attr(item.span)

        if not item.blocks:
            self.line(f"<li{item_attrs}></li>")
            return

        first = item.blocks[0]
        if not tight:
            self.line(f"<li{item_attrs}>")
            self.indent += 1
            for index, child in enumerate(item.blocks):
                if index == 0 and prefix and isinstance(child.kind, Paragraph):
                    content = self.render_inlines(child.kind.content)
                    self.line(f"<p>{prefix}{content}</p>")
                    continue
                self.emit_block(child)
            self.indent -= 1
            self.line("</li>")
            return

        if isinstance(first.kind, Paragraph):
            # The first paragraph is unwrapped onto the <li> line.
            content = self.render_inlines(first.kind.content)
            self.write_indent()
            self.write(f"<li{item_attrs}>{prefix}{content}")
            if len(item.blocks) == 1:
                self.write("</li>\n")
                return
            self.write("\n")
            self.indent += 1
            last_ended = self._emit_children(item.blocks[1:], tight=True)
            self.indent -= 1
        else:
            self.line(f"<li{item_attrs}>")
            self.indent += 1
            if prefix:
                self.line(prefix)
            last_ended = self._emit_children(item.blocks, tight=True)
            self.indent -= 1

        if last_ended:
            self.line("</li>")
        else:
            self.write("</li>\n")

    def _emit_table(self, block: Block, table: Table) -> None:
        self.line(f"<table{self.block_attrs(block)}>")
        self.indent += 1
        self.line("<thead>")
        self.indent += 1
        self.line("<tr>")
        self.indent += 1
        for column, header in enumerate(table.headers):
            align = self._align_attr(table, column)
            self.line(f"<th{align}>{self.render_inlines(header)}</th>")
        self.indent -= 1
        self.line("</tr>")
        self.indent -= 1
        self.line("</thead>")
        if table.rows:
            self.line("<tbody>")
            self.indent += 1
            for row in table.rows:
                self.line("<tr>")
                self.indent += 1
                for column, cell in enumerate(row):
                    align = self._align_attr(table, column)
                    self.line(f"<td{align}>{self.render_inlines(cell)}</td>")
                self.indent -= 1
                self.line("</tr>")
            self.indent -= 1
            self.line("</tbody>")
        self.indent -= 1
        self.line("</table>")

    @staticmethod
    def _align_attr(table: Table, column: int) -> str:
        if column >= len(table.aligns):
            return ""
        name = _ALIGN_NAMES.get(table.aligns[column])
        return f' align="{name}"' if name else ""

    def _emit_box(self, block: Block, box: BoxBlock) -> None:
        attrs = 'class="TypMark-box" data-typmark="box"'
        attrs += self.span_attr(block.span)
        attrs += _id_attr(block.attrs.label)
        attrs += _data_attrs(block.attrs.items)
        self.line(f"<div {attrs}>")
        self.indent += 1
        if box.title is not None:
            title = self.render_inlines(box.title, RenderContext.TITLE)
            self.line(f'<div class="TypMark-box-title">{title}</div>')
        self.line('<div class="TypMark-box-body">')
        self.indent += 1
        self.emit_blocks(box.blocks)
        self.indent -= 1
        self.line("</div>")
        self.indent -= 1
        self.line("</div>")

    def _emit_code_block(self, block: Block, code: CodeBlock) -> None:
        attrs = self.block_attrs(block) + _data_attrs(code.info_attrs.items)
        lang = escape_html(code.lang) if code.lang is not None else None

        if self.options.simple_code_blocks or code.kind == CodeBlockKind.INDENTED:
            lang_class = ""
            if code.kind == CodeBlockKind.FENCED and lang is not None:
                lang_class = f' class="language-{lang}"'
            escaped = escape_html(code.text)
            self.write(f"<pre{attrs}><code{lang_class}>{escaped}")
            if escaped and not escaped.endswith("\n"):
                self.write("\n")
            self.write("</code></pre>\n")
            return

        lang_attr = f' data-lang="{lang}"' if lang is not None else ""
        self.line(f'<figure class="TypMark-codeblock" data-typmark="codeblock"{attrs}{lang_attr}>')
        self.indent += 1
        self.write_indent()
        self.write(f'<pre class="TypMark-pre"><code class="language-{lang or ""}">')

        meta = code.meta
        labels = {line_label.line: line_label.label.name for line_label in meta.line_labels}
        display_line = 1
        for line_no, text in enumerate(split_lines_preserve(code.text), start=1):
            highlighted = _in_ranges(line_no, meta.hl)
            diff = None
            if _in_ranges(line_no, meta.diff_add):
                diff = "add"
            elif _in_ranges(line_no, meta.diff_del):
                diff = "del"

            css_class = "line"
            if highlighted:
                css_class += " highlighted"
            if diff is not None:
                css_class += f" diff {diff}"
            line_attrs = f'class="{css_class}"'
            if diff != "del":
                line_attrs += f' data-line="{display_line}"'
                display_line += 1
            if highlighted:
                line_attrs += " data-highlighted-line"
            if diff is not None:
                line_attrs += f' data-diff="{diff}"'
            if line_no in labels:
                name = escape_html(labels[line_no])
                line_attrs += f' id="{name}" data-line-label="{name}"'
            self.write(f"<span {line_attrs}>{escape_html(text)}</span>")

        self.write("</code></pre>\n")
        self.indent -= 1
        self.line("</figure>")

    # Inlines

    def render_inlines(
        self, inlines: list[Inline], context: RenderContext = RenderContext.NORMAL
    ) -> str:
        return "".join(self.render_inline(inline, context) for inline in inlines)

    def render_inline(self, inline: Inline, context: RenderContext) -> str:
        kind = inline.kind
        span_attr = self.span_attr(inline.span)

        if isinstance(kind, Text):
            text = escape_html(kind.text)
            return f"<span{span_attr}>{text}</span>" if span_attr else text
        if isinstance(kind, CodeSpan):
            return f"<code{span_attr}>{escape_html(kind.code)}</code>"
        if isinstance(kind, MathInline):
            svg = self.render_math(kind.typst_src, display=False)
            if svg is None:
                source = escape_html(kind.typst_src)
                return f'<span class="TypMark-math-inline--error"{span_attr}>{source}</span>'
            return (
                f'<span class="TypMark-math-inline"{span_attr}>'
                '<span class="TypMark-math-inline-strut" aria-hidden="true"></span>'
                f"{svg}</span>"
            )
        if isinstance(kind, SoftBreak):
            return "\n"
        if isinstance(kind, HardBreak):
            return f"<br{span_attr} />\n"
        if isinstance(kind, Emph):
            return f"<em{span_attr}>{self.render_inlines(kind.children, context)}</em>"
        if isinstance(kind, Strong):
            return f"<strong{span_attr}>{self.render_inlines(kind.children, context)}</strong>"
        if isinstance(kind, Strikethrough):
            return f"<del{span_attr}>{self.render_inlines(kind.children, context)}</del>"
        if isinstance(kind, Link):
            children = self.render_inlines(kind.children, context)
            if context == RenderContext.REFERENCE_TEXT:
                return f'<span class="TypMark-delink"{span_attr}>{children}</span>'
            title = f' title="{escape_html(kind.title)}"' if kind.title is not None else ""
            return f'<a href="{escape_url_attr(kind.url)}"{title}{span_attr}>{children}</a>'
        if isinstance(kind, LinkRef):
            text = f"[{self.render_inlines(kind.children, context)}]"
            if kind.meta.label_open_span is not None:
                text += f"[{escape_html(kind.label)}]"
            return f"<span{span_attr}>{text}</span>" if span_attr else text
        if isinstance(kind, Image):
            if context == RenderContext.REFERENCE_TEXT:
                return self.render_inlines(kind.alt, context)
            alt = escape_html(render_inlines_text(kind.alt))
            title = f' title="{escape_html(kind.title)}"' if kind.title is not None else ""
            return f'<img src="{escape_url_attr(kind.url)}" alt="{alt}"{title}{span_attr} />'
        if isinstance(kind, ImageRef):
            if context == RenderContext.REFERENCE_TEXT:
                return self.render_inlines(kind.alt, context)
            text = f"![{self.render_inlines(kind.alt, context)}]"
            if kind.meta.label_open_span is not None:
                text += f"[{escape_html(kind.label)}]"
            return f"<span{span_attr}>{text}</span>" if span_attr else text
        if isinstance(kind, Ref):
            return self._render_ref(kind, context, span_attr)
        if isinstance(kind, HtmlSpan):
            return f"<span{span_attr}>{kind.raw}</span>" if span_attr else kind.raw
        return ""

    def _render_ref(self, ref: Ref, context: RenderContext, span_attr: str) -> str:
        label = escape_html(ref.label.name)
        resolved = ref.resolved
        if ref.bracket is not None:
            display = self.render_inlines(ref.bracket, RenderContext.REFERENCE_TEXT)
        elif isinstance(resolved, ResolvedBlock) and resolved.display is not None:
            display = self.render_inlines(resolved.display, RenderContext.REFERENCE_TEXT)
        else:
            display = label

        if context == RenderContext.REFERENCE_TEXT:
            if resolved is None:
                return (
                    f'<span class="TypMark-delink ref-unresolved"{span_attr} '
                    f'data-ref-label="{label}">{display}</span>'
                )
            return f'<span class="TypMark-delink"{span_attr}>{display}</span>'

        if resolved is None:
            return (
                f'<span class="TypMark-ref ref-unresolved"{span_attr} '
                f'data-ref-label="{label}">{display}</span>'
            )
        return f'<a class="TypMark-ref"{span_attr} href="#{label}">{display}</a>'


def emit_html(
    blocks: list[Block],
    options: HtmlEmitOptions | None = None,
    *,
    source_map: SourceMap | None = None,
    settings: MathSettings | None = None,
    math_renderer: MathRenderer | None = None,
) -> str:
    """Render blocks to an HTML fragment.

    Args:
        blocks: Resolved blocks, usually ``result.document.blocks``.
        options: Markup switches; defaults to `HtmlEmitOptions()`.
        source_map: When given, tags carry ``data-tm-range`` attributes.
        settings: Math size and font options.
        math_renderer: Renderer for math; None renders error placeholders.

    Returns:
        str: HTML with LF line endings and no trailing newline.

    Examples:
        emit_html(parse("Paragraph.\\n").document.blocks)  # "<p>Paragraph.</p>"
    """
    writer = HtmlWriter(options or HtmlEmitOptions(), source_map, settings, math_renderer)
    writer.emit_blocks(blocks)
    return writer.finish()


def emit_html_document(
    document: Document,
    options: HtmlEmitOptions | None = None,
    *,
    source_map: SourceMap | None = None,
    math_renderer: MathRenderer | None = None,
) -> str:
    """Render a document, taking math settings from its settings line."""
    settings = math_settings_from_attrs(document.settings)
    return emit_html(
        document.blocks,
        options,
        source_map=source_map,
        settings=settings,
        math_renderer=math_renderer,
    )
