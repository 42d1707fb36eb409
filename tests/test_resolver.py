from __future__ import annotations

from typmark import parse, render, resolve
from typmark.diagnostics import (
    E_LABEL_DUP,
    E_REF_DEPTH,
    E_REF_OMIT,
    E_REF_SELF_TITLE,
    W_REF_MISSING,
)
from typmark.models import Paragraph, Ref, ResolvedBlock, ResolvedCodeLine, Text
from typmark.resolver import MAX_REFERENCE_DEPTH, walk_blocks
from typmark.source_map import Position


def _resolve(source: str):
    parsed = parse(source)
    return resolve(
        parsed.document, source, parsed.source_map, parsed.diagnostics, parsed.link_defs
    )


def _codes(result) -> list[str]:
    return [diagnostic.code for diagnostic in result.diagnostics]


def _refs(result) -> list[Ref]:
    refs = []
    for block in walk_blocks(result.document.blocks):
        if isinstance(block.kind, Paragraph):
            refs.extend(inline.kind for inline in block.kind.content if isinstance(inline.kind, Ref))
    return refs


def test_reference_to_paragraph_without_text_is_an_error():
    result = render("{#p}\nParagraph.\n\n@p\n")

    assert [diagnostic.code for diagnostic in result.diagnostics] == [E_REF_OMIT]
    assert result.html


def test_missing_reference_target_warns():
    result = render("@missing[link]\n")

    assert [diagnostic.code for diagnostic in result.diagnostics] == [W_REF_MISSING]
    assert not result.has_errors
    assert "ref-unresolved" in result.html
    assert 'data-ref-label="missing"' in result.html


def test_section_reference_uses_title_as_display():
    result = _resolve("{#intro}\n# Intro\n\nSee @intro.\n")

    assert result.diagnostics == []
    ref = _refs(result)[0]
    assert isinstance(ref.resolved, ResolvedBlock)
    assert [inline.kind for inline in ref.resolved.display] == [Text("Intro")]


def test_bracket_text_is_kept_as_display():
    result = _resolve("{#intro}\n# Intro\n\nSee @intro[the intro].\n")

    ref = _refs(result)[0]
    assert ref.resolved == ResolvedBlock("intro", None)
    assert [inline.kind for inline in ref.bracket] == [Text("the intro")]


def test_titled_box_label_is_a_title_target():
    source = "Intro\n\n{#tip}\n:::box Tip\nx\n:::\n\nSee @tip.\n"
    result = _resolve(source)

    assert result.diagnostics == []
    assert [inline.kind for inline in _refs(result)[0].resolved.display] == [Text("Tip")]


def test_code_line_reference():
    result = _resolve("```py {hl=1:setup}\nx = 1\n```\n\nSee @setup[line one].\n")

    assert result.diagnostics == []
    assert _refs(result)[0].resolved == ResolvedCodeLine("setup")


def test_duplicate_label_points_at_first_site():
    result = _resolve("{#x}\n# One\n\n{#x}\n# Two\n")

    duplicates = [diagnostic for diagnostic in result.diagnostics if diagnostic.code == E_LABEL_DUP]
    assert len(duplicates) == 1
    related = duplicates[0].related
    assert len(related) == 1
    assert related[0].range.start == Position(0, 2)
    assert duplicates[0].range.start == Position(3, 2)


def test_duplicate_labels_still_emit_both_sections():
    result = render("{#x}\n# One\n\n{#x}\n# Two\n")

    assert result.html.count("<section") == 2


def test_self_reference_in_title():
    result = _resolve("{#a}\n# Title @a\n")

    assert E_REF_SELF_TITLE in _codes(result)


def test_mutual_title_references_terminate():
    result = _resolve("{#a}\n# Title @b\n\n{#b}\n# Title @a\n")

    codes = _codes(result)
    assert E_REF_SELF_TITLE not in codes
    assert E_REF_DEPTH in codes


def test_deep_reference_chain_is_cut_at_depth_limit():
    count = MAX_REFERENCE_DEPTH + 5
    parts = []
    for index in range(count):
        parts.append(f"{{#l{index}}}\n# T @l{index + 1}\n")
    parts.append(f"{{#l{count}}}\n# End\n")
    parts.append("\nSee @l0.\n")
    result = _resolve("\n".join(parts))

    assert E_REF_DEPTH in _codes(result)


def test_labels_inside_lists_are_indexed():
    result = _resolve("- {#item}\n  Item text\n\nSee @item[it].\n")

    assert W_REF_MISSING not in _codes(result)
