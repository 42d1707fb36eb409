from __future__ import annotations

import logging

import pytest

from typmark import parse
from typmark.exceptions import MathRenderError
from typmark.math import (
    CachedMathRenderer,
    MathSettings,
    build_typst_source,
    math_settings_from_attrs,
    prefix_svg_ids,
)


class _CountingBackend:
    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    def render(self, source: str, display: bool, settings: MathSettings) -> str:
        self.calls += 1
        if self.fail:
            raise MathRenderError(source, "unsupported")
        return f"<svg>{source}</svg>"


def test_settings_from_settings_line():
    document = parse('{math-inline-size=10pt math-block-size="1.2em" math-font="Fira Math"}\n\nx\n').document

    settings = math_settings_from_attrs(document.settings)

    assert settings == MathSettings("10pt", "1.2em", "Fira Math")
    assert settings.size_for(True) == "1.2em"
    assert settings.size_for(False) == "10pt"


def test_settings_default_when_missing():
    assert math_settings_from_attrs(None) == MathSettings()


def test_inline_typst_source():
    assert build_typst_source("x^2", display=False) == (
        "#set page(width: auto, height: auto, margin: 0pt)\n#math.equation(block: false, $x^2$)"
    )


def test_display_typst_source_with_size_and_font():
    settings = MathSettings(block_size="14pt", font='New "CM"')

    assert build_typst_source("a", display=True, settings=settings).splitlines() == [
        "#set page(width: auto, height: auto, margin: 0.5em)",
        "#set block(spacing: 0.5em)",
        "#set text(size: 14pt)",
        '#show math.equation: set text(font: "New \\"CM\\"")',
        "#math.equation(block: true, $a$)",
    ]


def test_invalid_size_is_ignored(caplog):
    with caplog.at_level(logging.WARNING, logger="typmark.math"):
        source = build_typst_source("a", display=False, settings=MathSettings(inline_size="huge"))

    assert "#set text" not in source
    assert "Ignoring invalid math size" in caplog.text


def test_prefix_svg_ids():
    svg = (
        '<svg><defs><path id="g1" d="M0"/><clipPath id="c"/></defs>'
        '<use xlink:href="#g1"/><use href="#g1"/><g clip-path="url(#c)"/></svg>'
    )

    assert prefix_svg_ids(svg, "tm-m3") == (
        '<svg><defs><path id="tm-m3-g1" d="M0"/><clipPath id="tm-m3-c"/></defs>'
        '<use xlink:href="#tm-m3-g1"/><use href="#tm-m3-g1"/><g clip-path="url(#tm-m3-c)"/></svg>'
    )


def test_prefix_svg_ids_leaves_external_links():
    svg = '<a href="https://example.com">x</a>'

    assert prefix_svg_ids(svg, "p") == svg


def test_cache_hits_skip_backend():
    backend = _CountingBackend()
    renderer = CachedMathRenderer(backend)
    settings = MathSettings()

    assert renderer.render("x", False, settings) == "<svg>x</svg>"
    assert renderer.render("x", False, settings) == "<svg>x</svg>"
    assert backend.calls == 1
    assert len(renderer) == 1


def test_cache_key_includes_mode_and_size():
    backend = _CountingBackend()
    renderer = CachedMathRenderer(backend)

    renderer.render("x", False, MathSettings())
    renderer.render("x", True, MathSettings())
    renderer.render("x", False, MathSettings(inline_size="12pt"))
    renderer.render("x", True, MathSettings(inline_size="12pt"))

    assert backend.calls == 3


def test_cache_evicts_least_recently_used():
    backend = _CountingBackend()
    renderer = CachedMathRenderer(backend, capacity=2)
    settings = MathSettings()

    renderer.render("a", False, settings)
    renderer.render("b", False, settings)
    renderer.render("a", False, settings)
    renderer.render("c", False, settings)
    assert backend.calls == 3

    renderer.render("a", False, settings)
    assert backend.calls == 3
    renderer.render("b", False, settings)
    assert backend.calls == 4
    assert len(renderer) == 2


def test_failures_are_not_cached():
    backend = _CountingBackend(fail=True)
    renderer = CachedMathRenderer(backend)

    for _ in range(2):
        with pytest.raises(MathRenderError):
            renderer.render("x", False, MathSettings())

    assert backend.calls == 2
    assert len(renderer) == 0


def test_cache_capacity_must_be_positive():
    with pytest.raises(ValueError, match="positive"):
        CachedMathRenderer(_CountingBackend(), capacity=0)


def test_math_render_error_is_a_value_error():
    error = MathRenderError("x", "bad")

    assert isinstance(error, ValueError)
    assert error.raw == "x"
    assert error.reason == "bad"
