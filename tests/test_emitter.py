from __future__ import annotations

import textwrap

import pytest

from typmark import HtmlEmitOptions, emit_html, parse, render
from typmark.emitter import escape_url_attr, render_inlines_text, split_lines_preserve
from typmark.exceptions import MathRenderError
from typmark.math import MathSettings


def _html(source: str, **options) -> str:
    return render(textwrap.dedent(source).lstrip(), HtmlEmitOptions(**options)).html


class _FakeMath:
    def __init__(self, fail_on: str | None = None):
        self.calls: list[tuple[str, bool, MathSettings]] = []
        self.fail_on = fail_on

    def render(self, source: str, display: bool, settings: MathSettings) -> str:
        self.calls.append((source, display, settings))
        if source == self.fail_on:
            raise MathRenderError(source, "boom")
        return '<svg><g id="glyph"/><use href="#glyph"/></svg>'


def test_paragraph():
    assert emit_html(parse("Paragraph.\n").document.blocks) == "<p>Paragraph.</p>"


def test_source_map_ranges_on_tags():
    result = render("Alpha\n", source_map=True)

    assert result.html == (
        '<p data-tm-range="0:0-0:5"><span data-tm-range="0:0-0:5">Alpha</span></p>'
    )


def test_sections_are_wrapped_by_default():
    assert _html("# Title\n\nBody.\n") == "<section>\n  <h1>Title</h1>\n  <p>Body.</p>\n</section>"


def test_section_label_becomes_id():
    html = _html("{#intro}\n# Intro\n")

    assert html.startswith('<section id="intro">')
    assert "<h1>Intro</h1>" in html


def test_section_wrap_disabled():
    html = _html("{#intro}\n# Title\n\nBody.\n", wrap_sections=False)

    assert html == '<h1 id="intro">Title</h1>\n<p>Body.</p>'


def test_nested_sections():
    html = _html(
        """
        # A
        ## B
        text
        """
    )

    assert html == (
        "<section>\n"
        "  <h1>A</h1>\n"
        "  <section>\n"
        "    <h2>B</h2>\n"
        "    <p>text</p>\n"
        "  </section>\n"
        "</section>"
    )


def test_simple_code_block():
    html = _html("```rs {#code foo=bar}\nlet x = 1;\n```\n", simple_code_blocks=True)

    assert html == '<pre id="code" data-foo="bar"><code class="language-rs">let x = 1;\n</code></pre>'


def test_indented_code_is_always_simple():
    html = render("    code\n").html

    assert html == "<pre><code>code\n</code></pre>"


def test_code_figure_lines():
    html = _html("```py {hl=1 diff_del=3}\na\nb\nc\nd\n```\n")

    assert html.startswith('<figure class="TypMark-codeblock" data-typmark="codeblock"')
    assert 'data-lang="py"' in html
    assert '<pre class="TypMark-pre"><code class="language-py">' in html
    assert (
        '<span class="line highlighted" data-line="1" data-highlighted-line>a</span>'
        '<span class="line" data-line="2">b</span>'
        '<span class="line diff del" data-diff="del">c</span>'
        '<span class="line" data-line="3">d</span>'
    ) in html
    assert html.endswith("</code></pre>\n</figure>")


def test_code_figure_line_labels():
    html = _html("```py {hl=2:setup}\na\nb\n```\n")

    assert (
        '<span class="line highlighted" data-line="2" data-highlighted-line '
        'id="setup" data-line-label="setup">b</span>'
    ) in html


def test_code_text_is_escaped():
    html = _html("```html\n<b>&</b>\n```\n")

    assert "&lt;b&gt;&amp;&lt;/b&gt;" in html


def test_tight_task_list():
    html = _html("- [x] a\n- [ ] b\n")

    assert html == (
        '<ul class="task-list">\n'
        '  <li class="task-list-item"><input type="checkbox" disabled="" checked="" /> a</li>\n'
        '  <li class="task-list-item"><input type="checkbox" disabled="" /> b</li>\n'
        "</ul>"
    )


def test_tight_list_without_tasks():
    assert _html("- one\n- two\n") == "<ul>\n  <li>one</li>\n  <li>two</li>\n</ul>"


def test_loose_list_wraps_paragraphs():
    assert _html("- one\n\n- two\n") == (
        "<ul>\n  <li>\n    <p>one</p>\n  </li>\n  <li>\n    <p>two</p>\n  </li>\n</ul>"
    )


def test_ordered_list_start():
    html = _html("3. three\n4. four\n")

    assert html.startswith('<ol start="3">')
    assert html.endswith("</ol>")


def test_ordered_list_starting_at_one_has_no_start():
    assert _html("1. one\n").startswith("<ol>")


def test_list_item_starting_with_code_keeps_pre():
    assert "<pre><code>" in _html("-\t\tfoo\n")


def test_blockquote():
    assert _html("> quoted\n") == "<blockquote>\n  <p>quoted</p>\n</blockquote>"


def test_box():
    html = _html(
        """
        :::box Note
        Inside.
        :::
        """
    )

    assert html == (
        '<div class="TypMark-box" data-typmark="box">\n'
        '  <div class="TypMark-box-title">Note</div>\n'
        '  <div class="TypMark-box-body">\n'
        "    <p>Inside.</p>\n"
        "  </div>\n"
        "</div>"
    )


def test_box_keeps_invalid_style_values():
    result = render("Intro\n\n{bg=#ff border-style=wavy}\n:::box\nx\n:::\n")

    assert 'data-bg="#ff"' in result.html
    assert 'data-border-style="wavy"' in result.html
    assert [diagnostic.code for diagnostic in result.diagnostics] == [
        "W_BOX_STYLE_INVALID",
        "W_BOX_STYLE_INVALID",
    ]


def test_table_alignment():
    html = _html(
        """
        | a | b |
        |:---|---:|
        | 1 | 2 |
        """
    )

    assert '<th align="left">a</th>' in html
    assert '<th align="right">b</th>' in html
    assert '<td align="left">1</td>' in html
    assert "<tbody>" in html


def test_thematic_break_and_html_block():
    html = _html("---\n\n<div>raw</div>\n")

    assert html.startswith("<hr />")
    assert "<div>raw</div>" in html


def test_labeled_html_block_is_wrapped():
    html = _html("Intro\n\n{#raw}\n<div>raw</div>\n")

    assert '<div class="TypMark-html" data-typmark="html" id="raw">' in html


def test_math_without_renderer_renders_placeholders():
    html = _html("Inline $x^2$.\n\n$$\na < b\n$$\n")

    assert '<span class="TypMark-math-inline--error">x^2</span>' in html
    assert '<div class="TypMark-math-block--error">a &lt; b</div>' in html


def test_math_renderer_output_is_prefixed():
    renderer = _FakeMath()
    html = render("$a$ and $b$\n", math_renderer=renderer).html

    assert 'id="tm-m1-glyph"' in html
    assert 'href="#tm-m2-glyph"' in html
    assert '<span class="TypMark-math-inline-strut" aria-hidden="true"></span>' in html
    assert [call[:2] for call in renderer.calls] == [("a", False), ("b", False)]


def test_math_settings_reach_renderer():
    renderer = _FakeMath()
    render("{math-inline-size=12pt}\n\n$a$\n", math_renderer=renderer)

    assert renderer.calls[0][2].inline_size == "12pt"


def test_math_failure_falls_back_to_placeholder():
    renderer = _FakeMath(fail_on="bad")
    html = render("$bad$ $good$\n", math_renderer=renderer).html

    assert '<span class="TypMark-math-inline--error">bad</span>' in html
    assert 'id="tm-m2-glyph"' in html


def test_resolved_reference_links_to_label():
    html = _html("{#intro}\n# Intro\n\nSee @intro.\n")

    assert '<a class="TypMark-ref" href="#intro">Intro</a>' in html


def test_reference_text_keeps_inline_markup():
    html = _html("{#intro}\n# Intro\n\nSee @intro[*the* intro].\n")

    assert '<a class="TypMark-ref" href="#intro"><em>the</em> intro</a>' in html


def test_unresolved_reference():
    html = _html("@missing[link]\n")

    assert html == (
        '<p><span class="TypMark-ref ref-unresolved" data-ref-label="missing">link</span></p>'
    )


def test_inline_markup():
    html = _html("*a* **b** ~~c~~ `d`\n")

    assert html == "<p><em>a</em> <strong>b</strong> <del>c</del> <code>d</code></p>"


def test_link_and_image():
    html = _html('[a](https://x.test/a "T") ![alt *x*](img.png)\n')

    assert '<a href="https://x.test/a" title="T">a</a>' in html
    assert '<img src="img.png" alt="alt x" />' in html


def test_hard_break():
    assert _html("a\\\nb\n") == "<p>a<br />\nb</p>"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("a b&c", "a%20b&amp;c"),
        ("café", "caf%C3%A9"),
        ('"q"', "%22q%22"),
    ],
)
def test_escape_url_attr(url, expected):
    assert escape_url_attr(url) == expected


def test_split_lines_preserve():
    assert split_lines_preserve("") == [""]
    assert split_lines_preserve("a\r\nb") == ["a", "b"]


def test_render_inlines_text_flattens():
    inlines = parse("*a* `b` c\n").document.blocks[0].kind.content

    assert render_inlines_text(inlines) == "a b c"


def test_output_is_deterministic_and_lf_only():
    source = "# T\n\n- a\n- b\n\n```\nx\n```\n\n> q\n"
    first = render(source).html
    second = render(source).html

    assert first == second
    assert "\r" not in first
    assert first.count("\n") == len(first.splitlines()) - 1
    assert not first.endswith("\n")
