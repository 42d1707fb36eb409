from __future__ import annotations

from typmark import parse, resolve
from typmark.diagnostics import E_MATH_INLINE_NL, E_REF_BRACKET_NL
from typmark.models import (
    CodeSpan,
    Emph,
    HardBreak,
    HtmlSpan,
    Image,
    Link,
    MathInline,
    Ref,
    SoftBreak,
    Strikethrough,
    Strong,
    Text,
)


def _inlines(source: str):
    result = parse(source)
    return result.document.blocks[0].kind.content


def _kinds(source: str) -> list[type]:
    return [type(inline.kind) for inline in _inlines(source)]


def _plain(source: str) -> str:
    return "".join(
        inline.kind.text for inline in _inlines(source) if isinstance(inline.kind, Text)
    )


def test_emphasis_and_strong():
    inlines = _inlines("*em* and **strong**")

    kinds = [type(inline.kind) for inline in inlines]
    assert Emph in kinds
    assert Strong in kinds
    emph = next(inline for inline in inlines if isinstance(inline.kind, Emph))
    assert emph.kind.children[0].kind == Text("em")


def test_intraword_underscore_is_not_emphasis():
    assert Emph not in _kinds("snake_case_name")


def test_strikethrough_needs_double_tilde():
    assert Strikethrough in _kinds("~~gone~~")
    assert Strikethrough not in _kinds("~nope~")


def test_code_span_strips_one_surrounding_space():
    inlines = _inlines("`` `tick` ``")

    assert inlines[0].kind == CodeSpan("`tick`")


def test_inline_math():
    inlines = _inlines("Area $pi r^2$ here")

    math = next(inline for inline in inlines if isinstance(inline.kind, MathInline))
    assert math.kind.typst_src == "pi r^2"


def test_newline_in_inline_math_is_reported():
    result = parse("$a\nb$\n")

    assert [diagnostic.code for diagnostic in result.diagnostics] == [E_MATH_INLINE_NL]


def test_reference_with_bracket_text():
    inlines = _inlines("See @fig-1[the figure].")

    ref = next(inline for inline in inlines if isinstance(inline.kind, Ref))
    assert ref.kind.label.name == "fig-1"
    assert [inline.kind for inline in ref.kind.bracket] == [Text("the figure")]


def test_newline_in_reference_bracket_is_reported():
    result = parse("@ref[two\nlines]\n")

    assert E_REF_BRACKET_NL in [diagnostic.code for diagnostic in result.diagnostics]


def test_email_address_is_not_a_reference():
    assert Ref not in _kinds("mail me at user@example.com")


def test_path_like_token_is_not_a_reference():
    assert Ref not in _kinds("see a/@b")


def test_angle_autolink():
    link = _inlines("<https://example.com>")[0]
    assert isinstance(link.kind, Link)
    assert link.kind.url == "https://example.com"


def test_email_autolink_gets_mailto():
    link = _inlines("<user@example.com>")[0]

    assert isinstance(link.kind, Link)
    assert link.kind.url == "mailto:user@example.com"


def test_inline_link_with_title():
    link = _inlines('[text](/url "Title")')[0]

    assert isinstance(link.kind, Link)
    assert link.kind.url == "/url"
    assert link.kind.title == "Title"
    assert link.kind.children[0].kind == Text("text")


def test_inline_image():
    image = _inlines("![alt text](/img.png)")[0]

    assert isinstance(image.kind, Image)
    assert image.kind.url == "/img.png"


def test_undefined_reference_link_stays_literal():
    assert _plain("[nothing] here") == "[nothing] here"


def test_reference_link_resolves_to_definition():
    source = "[Docs][d]\n\n[d]: https://example.com\n"
    parsed = parse(source)
    result = resolve(
        parsed.document, source, parsed.source_map, parsed.diagnostics, parsed.link_defs
    )

    link = result.document.blocks[0].kind.content[0]
    assert isinstance(link.kind, Link)
    assert link.kind.url == "https://example.com"


def test_entities_and_escapes():
    assert _plain("&amp; &copy; \\*literal\\*") == "& © *literal*"


def test_backslash_hard_break_and_soft_break():
    kinds = _kinds("a\\\nb\nc")

    assert HardBreak in kinds
    assert SoftBreak in kinds


def test_trailing_spaces_make_hard_break():
    assert HardBreak in _kinds("a  \nb")


def test_inline_html_span():
    kinds = _kinds("a <b>bold</b> c")

    assert HtmlSpan in kinds


def test_inline_spans_are_ordered_and_inside_paragraph():
    source = "Some *text* with `code` and @ref[x].\n"
    result = parse(source)
    paragraph = result.document.blocks[0]

    previous_end = paragraph.span.start
    for inline in paragraph.kind.content:
        assert paragraph.span.start <= inline.span.start <= inline.span.end <= paragraph.span.end
        assert previous_end <= inline.span.start
        previous_end = inline.span.end
