"""
typmark: parser and HTML renderer for TypMark, a CommonMark dialect with
labels, cross-references, boxes, annotated code blocks and Typst math.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    typmark notes.tmd --diagnostics pretty

Library Usage:
    from typmark import emit_html_document, parse, resolve

    parsed = parse(source)
    resolved = resolve(parsed.document, source, parsed.source_map,
                       parsed.diagnostics, parsed.link_defs)
    html = emit_html_document(resolved.document)
"""

import logging

from .diagnostics import Diagnostic, RelatedDiagnostic, Severity, has_errors
from .emitter import HtmlEmitOptions, emit_html, emit_html_document
from .exceptions import MathRenderError, SourceTooLargeError, TypmarkError
from .math import CachedMathRenderer, MathRenderer, MathSettings, math_settings_from_attrs
from .models import Document
from .parser import ParseResult, parse
from .pipeline import RenderResult, render
from .resolver import ResolveResult, resolve
from .sanitizer import emit_html_document_sanitized, emit_html_sanitized, sanitize_html
from .sections import build_sections
from .source_map import Position, Range, SourceMap
from .span import Span, SpanError

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core functionality
    "parse",
    "resolve",
    "build_sections",
    "emit_html",
    "emit_html_document",
    "emit_html_sanitized",
    "emit_html_document_sanitized",
    "sanitize_html",
    "render",
    # Data models
    "Document",
    "ParseResult",
    "ResolveResult",
    "RenderResult",
    "HtmlEmitOptions",
    "Span",
    "SourceMap",
    "Position",
    "Range",
    "Diagnostic",
    "RelatedDiagnostic",
    "Severity",
    # Math
    "MathRenderer",
    "MathSettings",
    "CachedMathRenderer",
    "math_settings_from_attrs",
    # Utilities
    "has_errors",
    # Exceptions
    "TypmarkError",
    "SpanError",
    "SourceTooLargeError",
    "MathRenderError",
    # Version
    "__version__",
]
