"""Math rendering contract, settings, caching and SVG id scoping."""

from __future__ import annotations

import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Protocol

from .models import AttrList

logger = logging.getLogger(__name__)

DEFAULT_CACHE_CAPACITY = 100

INLINE_SIZE_KEY = "math-inline-size"
BLOCK_SIZE_KEY = "math-block-size"
FONT_KEY = "math-font"

# Typst lengths accepted for math sizes.
_SIZE_PATTERN = re.compile(r"^\d+(\.\d+)?(pt|em|mm|cm|in)$")

_ID_ATTR = re.compile(r'(\sid=")([^"]+)(")')
_HREF_ATTR = re.compile(r'(\s(?:xlink:)?href="#)([^"]+)(")')
_URL_REF = re.compile(r"(url\(#)([^)]+)(\))")


@dataclass(frozen=True)
class MathSettings:
    """Document-level math options.

    Attributes:
        inline_size: Text size for inline math, as a Typst length.
        block_size: Text size for display math, as a Typst length.
        font: Font family name for math.
    """

    inline_size: str | None = None
    block_size: str | None = None
    font: str | None = None

    def size_for(self, display: bool) -> str | None:
        return self.block_size if display else self.inline_size


class MathRenderer(Protocol):
    """Anything that turns Typst math source into an SVG string.

    Implementations raise `MathRenderError` when the source does not compile.
    """

    def render(self, source: str, display: bool, settings: MathSettings) -> str:
        ...


def math_settings_from_attrs(settings: AttrList | None) -> MathSettings:
    """Read math options from the document settings line.

    Args:
        settings: Attribute list from a leading unlabelled target line.

    Returns:
        MathSettings: Options found in `settings`; absent keys stay None.

    Examples:
        # {math-inline-size=10pt}
        math_settings_from_attrs(document.settings).inline_size  # "10pt"
    """
    if settings is None:
        return MathSettings()
    return MathSettings(
        inline_size=settings.get(INLINE_SIZE_KEY),
        block_size=settings.get(BLOCK_SIZE_KEY),
        font=settings.get(FONT_KEY),
    )


def _typst_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_typst_source(source: str, display: bool, settings: MathSettings | None = None) -> str:
    """Wrap a math snippet in a standalone Typst document.

    Sizes that are not plain Typst lengths are ignored with a warning.

    Args:
        source: Math source as written between the delimiters.
        display: Whether the math is a display block.
        settings: Size and font options.

    Returns:
        str: A Typst document whose single page fits the equation.

    Examples:
        build_typst_source("x^2", display=False).splitlines()[-1]
        # "#math.equation(block: false, $x^2$)"
    """
    settings = settings or MathSettings()
    margin = "0.5em" if display else "0pt"
    lines = [f"#set page(width: auto, height: auto, margin: {margin})"]
    if display:
        lines.append("#set block(spacing: 0.5em)")

    size = settings.size_for(display)
    if size is not None:
        if _SIZE_PATTERN.match(size):
            lines.append(f"#set text(size: {size})")
        else:
            logger.warning("Ignoring invalid math size: %s", size)
    if settings.font:
        lines.append(f"#show math.equation: set text(font: {_typst_string(settings.font)})")

    block = "true" if display else "false"
    lines.append(f"#math.equation(block: {block}, ${source}$)")
    return "\n".join(lines)


def prefix_svg_ids(svg: str, prefix: str) -> str:
    """Scope every id of an SVG document under `prefix`.

    Rewrites ``id="..."`` attributes together with the ``href="#..."``,
    ``xlink:href="#..."`` and ``url(#...)`` references pointing at them, so
    several SVGs can share one HTML page.

    Args:
        svg: SVG markup.
        prefix: Prefix such as ``tm-m1``; joined to each id with ``-``.

    Returns:
        str: The rewritten markup.

    Examples:
        prefix_svg_ids('<g id="a"/><use href="#a"/>', "tm-m1")
        # '<g id="tm-m1-a"/><use href="#tm-m1-a"/>'
    """
    replacement = rf"\g<1>{prefix}-\g<2>\g<3>"
    svg = _ID_ATTR.sub(replacement, svg)
    svg = _HREF_ATTR.sub(replacement, svg)
    return _URL_REF.sub(replacement, svg)


class CachedMathRenderer:
    """Thread-safe LRU cache in front of another renderer.

    Entries are keyed by source, display mode, size and font. Failures are
    not cached.

    Args:
        backend: Renderer doing the actual work.
        capacity: Maximum number of cached SVGs.

    Raises:
        ValueError: If `capacity` is not positive.
    """

    def __init__(self, backend: MathRenderer, capacity: int = DEFAULT_CACHE_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity}.")
        self.backend = backend
        self.capacity = capacity
        self._entries: OrderedDict[tuple[str, bool, str | None, str | None], str] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def render(self, source: str, display: bool, settings: MathSettings) -> str:
        key = (source, display, settings.size_for(display), settings.font)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                logger.debug("Math cache hit")
                return cached

        logger.debug("Math cache miss")
        svg = self.backend.render(source, display, settings)

        with self._lock:
            self._entries[key] = svg
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)
        return svg
