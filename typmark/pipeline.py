"""Parse, resolve and emit in one call."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .diagnostics import Diagnostic, has_errors
from .emitter import HtmlEmitOptions, emit_html_document
from .math import MathRenderer
from .parser import parse
from .resolver import resolve
from .sanitizer import sanitize_html

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Output of `render`.

    Attributes:
        html: The emitted HTML fragment.
        diagnostics: Parse and resolve diagnostics, in the order they were found.
    """

    html: str
    diagnostics: list[Diagnostic]

    @property
    def has_errors(self) -> bool:
        return has_errors(self.diagnostics)


def render(
    source: str | bytes,
    options: HtmlEmitOptions | None = None,
    *,
    sanitized: bool = False,
    source_map: bool = False,
    math_renderer: MathRenderer | None = None,
) -> RenderResult:
    """Render TypMark source to HTML.

    Args:
        source: Source text or UTF-8 bytes.
        options: Markup switches for the emitter.
        sanitized: Pass the HTML through the allow-list sanitizer.
        source_map: Add ``data-tm-range`` attributes to emitted tags.
        math_renderer: Renderer for math; None renders error placeholders.

    Returns:
        RenderResult: The HTML and every diagnostic found on the way.

    Examples:
        render("# Title\\n\\nBody.").html
        # "<section>\\n  <h1>Title</h1>\\n  <p>Body.</p>\\n</section>"
    """
    parsed = parse(source)
    resolved = resolve(
        parsed.document,
        parsed.source_map.source,
        parsed.source_map,
        parsed.diagnostics,
        parsed.link_defs,
    )
    html = emit_html_document(
        resolved.document,
        options,
        source_map=parsed.source_map if source_map else None,
        math_renderer=math_renderer,
    )
    if sanitized:
        html = sanitize_html(html)
    logger.debug("Rendered %d characters of HTML", len(html))
    return RenderResult(html, resolved.diagnostics)
