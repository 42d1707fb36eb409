"""Math backend compiling snippets with the ``typst`` Python package.

Install with the ``math`` extra: ``pip install typmark[math]``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

import typst

from .exceptions import MathRenderError
from .math import MathSettings, build_typst_source

logger = logging.getLogger(__name__)

FONT_PATHS_ENV_VAR = "TYPMARK_FONT_PATHS"
FONT_EXTENSIONS = (".ttf", ".otf", ".ttc", ".otc")


def expand_font_paths(entries: Iterable[str]) -> list[str]:
    """Expand font directories into the font files they contain.

    Args:
        entries: Font files or directories. Missing entries are skipped.

    Returns:
        list[str]: Font file paths; each directory contributes its files sorted
        by name.

    Examples:
        expand_font_paths(["/usr/share/fonts/newcm"])
    """
    paths: list[str] = []
    for entry in entries:
        if not entry:
            continue
        path = Path(entry).expanduser()
        if path.is_dir():
            fonts = sorted(
                candidate
                for candidate in path.iterdir()
                if candidate.is_file() and candidate.suffix.lower() in FONT_EXTENSIONS
            )
            paths.extend(str(font) for font in fonts)
        elif path.is_file():
            paths.append(str(path))
        else:
            logger.debug("Skipping missing font path: %s", path)
    return paths


def font_paths_from_env() -> list[str]:
    """Read font locations from ``TYPMARK_FONT_PATHS`` (``os.pathsep``-separated)."""
    env_value = os.environ.get(FONT_PATHS_ENV_VAR)
    if not env_value:
        return []
    return expand_font_paths(env_value.split(os.pathsep))


class TypstBackend:
    """Render math to SVG by compiling a throwaway Typst document.

    Args:
        font_paths: Font files or directories. Defaults to the entries of
            ``TYPMARK_FONT_PATHS``.
    """

    def __init__(self, font_paths: Iterable[str] | None = None):
        if font_paths is None:
            self.font_paths = font_paths_from_env()
        else:
            self.font_paths = expand_font_paths(font_paths)

    def render(self, source: str, display: bool, settings: MathSettings) -> str:
        """Compile `source` and return the SVG of its single page.

        Raises:
            MathRenderError: If Typst rejects the source or cannot run.
        """
        document = build_typst_source(source, display, settings)
        with tempfile.TemporaryDirectory(prefix="typmark-") as tmp_dir:
            main_path = Path(tmp_dir) / "main.typ"
            main_path.write_text(document, encoding="UTF-8")
            try:
                output = typst.compile(str(main_path), format="svg", font_paths=self.font_paths)
            except (RuntimeError, OSError) as error:
                logger.warning("Typst failed to compile math %r: %s", source, error)
                raise MathRenderError(source, str(error)) from error

        if isinstance(output, list):
            if not output:
                raise MathRenderError(source, "no pages produced")
            output = output[0]
        return output.decode("UTF-8") if isinstance(output, bytes) else str(output)
