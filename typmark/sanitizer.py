"""Allow-list sanitizing of emitted HTML, backed by nh3."""

from __future__ import annotations

import logging

import nh3

from .emitter import HtmlEmitOptions, emit_html, emit_html_document
from .math import MathRenderer, MathSettings
from .models import Block, Document
from .source_map import SourceMap

logger = logging.getLogger(__name__)

ALLOWED_TAGS = frozenset(
    {
        "a",
        "abbr",
        "b",
        "blockquote",
        "br",
        "code",
        "dd",
        "del",
        "details",
        "div",
        "dl",
        "dt",
        "em",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "i",
        "img",
        "kbd",
        "li",
        "ol",
        "p",
        "pre",
        "s",
        "strong",
        "sub",
        "summary",
        "sup",
        "u",
        "ul",
        "table",
        "thead",
        "tbody",
        "tr",
        "th",
        "td",
        "input",
        "figure",
        "span",
    }
)

SVG_TAGS = frozenset({"svg", "g", "defs", "path", "clipPath", "symbol", "use"})

_SVG_GEOMETRY = {
    "d",
    "fill",
    "fill-rule",
    "stroke",
    "stroke-linecap",
    "stroke-linejoin",
    "stroke-miterlimit",
    "stroke-width",
    "transform",
    "clip-path",
}

ALLOWED_ATTRIBUTES: dict[str, set[str]] = {
    "*": {"class", "id"},
    "a": {"href", "title"},
    "abbr": {"title"},
    "img": {"alt", "src", "title"},
    "ol": {"start"},
    "th": {"align"},
    "td": {"align"},
    "input": {"type", "checked", "disabled"},
    "span": {
        "class",
        "data-line",
        "data-highlighted-line",
        "data-diff",
        "data-line-label",
        "id",
        "aria-hidden",
    },
    "figure": {"class", "data-typmark", "data-lang", "id"},
    "div": {
        "class",
        "data-typmark",
        "id",
        "data-bg",
        "data-title-bg",
        "data-border-color",
        "data-border-style",
        "data-border-width",
    },
    "svg": {"viewBox", "width", "height", "class", "xmlns", "xmlns:xlink"},
    "g": {"transform", "class", "clip-path", "fill", "stroke"},
    "path": _SVG_GEOMETRY | {"class"},
    "clipPath": {"id"},
    "defs": {"id"},
    "symbol": {"id", "overflow"},
    "use": {"href", "xlink:href", "x", "y", "fill", "fill-rule", "transform"},
}

GENERIC_ATTRIBUTE_PREFIXES = frozenset({"data-"})


def sanitize_html(raw_html: str) -> str:
    """Strip every tag and attribute outside the allow-list.

    Disallowed tags are unwrapped (their text survives) except for
    ``script`` and ``style``, whose content is dropped. Generic ``class``,
    ``id`` and ``data-*`` attributes are kept on every allowed tag.

    Args:
        raw_html: HTML produced by the emitter.

    Returns:
        str: Sanitized HTML. Sanitizing the result again returns it unchanged.

    Examples:
        sanitize_html('<p onclick="x()">Hi<script>bad()</script></p>')
        # "<p>Hi</p>"
    """
    logger.debug("Sanitizing %d characters of HTML", len(raw_html))
    return nh3.clean(
        raw_html,
        tags=set(ALLOWED_TAGS | SVG_TAGS),
        attributes=ALLOWED_ATTRIBUTES,
        generic_attribute_prefixes=set(GENERIC_ATTRIBUTE_PREFIXES),
    )


def emit_html_sanitized(
    blocks: list[Block],
    options: HtmlEmitOptions | None = None,
    *,
    source_map: SourceMap | None = None,
    settings: MathSettings | None = None,
    math_renderer: MathRenderer | None = None,
) -> str:
    """Emit blocks with `emit_html` and sanitize the result."""
    raw_html = emit_html(
        blocks,
        options,
        source_map=source_map,
        settings=settings,
        math_renderer=math_renderer,
    )
    return sanitize_html(raw_html)


def emit_html_document_sanitized(
    document: Document,
    options: HtmlEmitOptions | None = None,
    *,
    source_map: SourceMap | None = None,
    math_renderer: MathRenderer | None = None,
) -> str:
    """Emit a document with `emit_html_document` and sanitize the result."""
    raw_html = emit_html_document(
        document,
        options,
        source_map=source_map,
        math_renderer=math_renderer,
    )
    return sanitize_html(raw_html)
