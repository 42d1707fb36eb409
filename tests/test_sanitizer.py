from __future__ import annotations

from typmark import emit_html_document_sanitized, parse, render, resolve, sanitize_html


def test_event_handlers_and_scripts_are_removed():
    assert sanitize_html('<p onclick="x()">Hi<script>bad()</script></p>') == "<p>Hi</p>"


def test_source_map_attributes_survive():
    html = sanitize_html('<p data-tm-range="0:0-0:5">Alpha</p>')

    assert html == '<p data-tm-range="0:0-0:5">Alpha</p>'


def test_links_get_rel():
    html = sanitize_html('<a href="https://example.com">x</a>')

    assert 'rel="noopener noreferrer"' in html
    assert 'href="https://example.com"' in html


def test_javascript_urls_are_dropped():
    html = sanitize_html('<a href="javascript:alert(1)">x</a>')

    assert "javascript" not in html


def test_unknown_tags_are_unwrapped():
    assert sanitize_html("<marquee>text</marquee>") == "text"


def test_sanitized_render_keeps_typmark_markup():
    result = render(":::box Note\nBody\n:::\n", sanitized=True)

    assert 'class="TypMark-box"' in result.html
    assert 'data-typmark="box"' in result.html
    assert "<p>Body</p>" in result.html


def test_raw_html_is_cleaned_in_sanitized_render():
    result = render('<div onmouseover="x()">raw</div>\n', sanitized=True)

    assert "onmouseover" not in result.html
    assert "raw" in result.html


def test_task_checkboxes_survive():
    result = render("- [x] done\n", sanitized=True)

    assert 'type="checkbox"' in result.html
    assert "checked" in result.html


def test_emit_html_document_sanitized():
    source = "Hello <script>x()</script>\n"
    parsed = parse(source)
    resolved = resolve(
        parsed.document, source, parsed.source_map, parsed.diagnostics, parsed.link_defs
    )

    html = emit_html_document_sanitized(resolved.document)

    assert "script" not in html
    assert html.startswith("<p>Hello")


def test_sanitizing_twice_changes_nothing():
    html = render("# Title\n\n*a* [b](https://x.test) `c`\n\n- [ ] task\n", sanitized=True).html

    assert sanitize_html(html) == html
