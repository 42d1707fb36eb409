from __future__ import annotations

from typmark import build_sections, parse
from typmark.models import BlockQuote, Paragraph, Section


def _sections(source: str):
    return build_sections(parse(source).document.blocks)


def test_headings_fold_until_same_or_higher_level():
    blocks = _sections("# A\ntext\n## B\n# C\n")

    assert [type(block.kind) for block in blocks] == [Section, Section]
    first, second = blocks
    assert [type(child.kind) for child in first.kind.children] == [Paragraph, Section]
    assert first.kind.children[1].kind.level == 2
    assert second.kind.children == []


def test_section_span_runs_to_last_child():
    source = "# A\ntext\n## B\nmore\n# C\n"
    blocks = _sections(source)

    first = blocks[0]
    assert first.span.start == 0
    assert first.span.end == source.index("more") + len("more")


def test_section_keeps_heading_label():
    blocks = _sections("{#intro}\n# Intro\n\nBody\n")

    section = blocks[0]
    assert isinstance(section.kind, Section)
    assert section.kind.label.name == "intro"
    assert section.attrs.label.name == "intro"


def test_blocks_before_first_heading_stay_top_level():
    blocks = _sections("Preface\n\n## Later\n")

    assert [type(block.kind) for block in blocks] == [Paragraph, Section]


def test_headings_inside_containers_fold_locally():
    blocks = _sections("> # Quoted\n> body\n")

    quote = blocks[0].kind
    assert isinstance(quote, BlockQuote)
    assert [type(block.kind) for block in quote.blocks] == [Section]
