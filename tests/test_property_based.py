from __future__ import annotations

from hypothesis import example, given, settings
from hypothesis import strategies as st

from typmark import parse, render, resolve, sanitize_html
from typmark.models import (
    BlockQuote,
    BoxBlock,
    Emph,
    Image,
    ImageRef,
    Inline,
    Link,
    LinkRef,
    ListBlock,
    Ref,
    Section,
    Strikethrough,
    Strong,
)
from typmark.resolver import block_inline_sequences, walk_blocks
from typmark.span import Span

# Characters that drive most block and inline constructs.
markup_alphabet = st.sampled_from(
    list("ab #*_-`$@[]{}()<>:|=!\\~.1\n \t") + ["\n\n", ":::box ", "```", "{#a}\n", "> ", "- "]
)
markup_text = st.lists(markup_alphabet, max_size=80).map("".join)


def _inline_children(inline: Inline) -> list[Inline]:
    kind = inline.kind
    if isinstance(kind, (Emph, Strong, Strikethrough, Link, LinkRef)):
        return kind.children
    if isinstance(kind, (Image, ImageRef)):
        return kind.alt
    if isinstance(kind, Ref) and kind.bracket is not None:
        return kind.bracket
    return []


def _walk_inlines(inlines: list[Inline]):
    for inline in inlines:
        yield inline
        yield from _walk_inlines(_inline_children(inline))


def _assert_nested(parent: Span, children: list[Span]) -> None:
    """Each child lies inside `parent` and starts after its previous sibling ends."""
    previous_end = parent.start
    for child in children:
        assert parent.start <= child.start <= child.end <= parent.end
        assert previous_end <= child.start
        previous_end = child.end


def _assert_inlines_nested(parent: Span, inlines: list[Inline]) -> None:
    _assert_nested(parent, [inline.span for inline in inlines])
    for inline in inlines:
        _assert_inlines_nested(inline.span, _inline_children(inline))


def _assert_blocks_nested(parent: Span, blocks) -> None:
    _assert_nested(parent, [block.span for block in blocks])
    for block in blocks:
        kind = block.kind
        if isinstance(kind, ListBlock):
            _assert_nested(block.span, [item.span for item in kind.items])
            for item in kind.items:
                _assert_blocks_nested(item.span, item.blocks)
        elif isinstance(kind, (BlockQuote, BoxBlock)):
            _assert_blocks_nested(block.span, kind.blocks)
        for inlines in block_inline_sequences(block):
            _assert_inlines_nested(block.span, inlines)


@given(st.text())
def test_render_never_raises(source: str):
    result = render(source)
    assert isinstance(result.html, str)


@given(st.binary(max_size=200))
def test_render_accepts_arbitrary_bytes(source: bytes):
    assert isinstance(render(source).html, str)


@given(markup_text)
def test_spans_stay_within_source(source: str):
    result = render(source)
    parsed = parse(source)

    for block in walk_blocks(parsed.document.blocks):
        assert 0 <= block.span.start <= block.span.end <= len(source)
        for inlines in block_inline_sequences(block):
            for inline in _walk_inlines(inlines):
                assert 0 <= inline.span.start <= inline.span.end <= len(source)
    for diagnostic in result.diagnostics:
        start, end = diagnostic.range.start, diagnostic.range.end
        assert (start.line, start.character) <= (end.line, end.character)


@given(markup_text)
@example("- a\n\t-\tb\n")
@example("- # a\t\tb\nx\n")
@example("> - a\t\t**b*\n> c\n")
def test_children_nest_inside_parents_in_order(source: str):
    parsed = parse(source)

    _assert_blocks_nested(parsed.document.span, parsed.document.blocks)


@given(markup_text)
def test_render_is_deterministic(source: str):
    assert render(source).html == render(source).html


@given(markup_text)
def test_output_uses_lf_and_no_trailing_newline(source: str):
    html = render(source).html

    assert "\r" not in html
    assert not html.endswith("\n")


@given(markup_text)
def test_diagnostics_are_stable(source: str):
    first = [diagnostic.to_dict() for diagnostic in render(source).diagnostics]
    second = [diagnostic.to_dict() for diagnostic in render(source).diagnostics]

    assert first == second


@settings(max_examples=50)
@given(st.text(alphabet="abc *_`#-\n", max_size=60))
def test_sanitizer_reaches_fixed_point(source: str):
    html = render(source, sanitized=True).html

    assert sanitize_html(html) == html


@given(markup_text)
def test_sections_only_contain_deeper_sections(source: str):
    parsed = parse(source)
    resolved = resolve(
        parsed.document, source, parsed.source_map, parsed.diagnostics, parsed.link_defs
    )

    for block in walk_blocks(resolved.document.blocks):
        if isinstance(block.kind, Section):
            for child in block.kind.children:
                if isinstance(child.kind, Section):
                    assert child.kind.level > block.kind.level
