"""Diagnostic values reported by the parser and resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .source_map import Range, SourceMap
from .span import Span

E_ATTR_SYNTAX = "E_ATTR_SYNTAX"
E_TARGET_ORPHAN = "E_TARGET_ORPHAN"
E_LABEL_DUP = "E_LABEL_DUP"
E_REF_OMIT = "E_REF_OMIT"
E_REF_BRACKET_NL = "E_REF_BRACKET_NL"
E_REF_SELF_TITLE = "E_REF_SELF_TITLE"
E_REF_DEPTH = "E_REF_DEPTH"
E_MATH_INLINE_NL = "E_MATH_INLINE_NL"
E_CODE_CONFLICT = "E_CODE_CONFLICT"

W_REF_MISSING = "W_REF_MISSING"
W_CODE_RANGE_OOB = "W_CODE_RANGE_OOB"
W_BOX_STYLE_INVALID = "W_BOX_STYLE_INVALID"


class Severity(Enum):
    """Diagnostic severity.

    Attributes:
        ERROR: The document is malformed; callers exit non-zero.
        WARNING: Something is suspicious but output is still meaningful.
    """

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class RelatedDiagnostic:
    """Secondary location attached to a diagnostic.

    Attributes:
        range: Source range of the related location.
        message: Optional explanation of the relation.
    """

    range: Range
    message: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"range": self.range.to_dict()}
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class Diagnostic:
    """A problem found in the source.

    Attributes:
        range: Source range the diagnostic points at.
        severity: Error or warning.
        code: Stable diagnostic code such as ``E_LABEL_DUP``.
        message: Human-readable message.
        related: Additional locations, e.g. the first definition of a label.
    """

    range: Range
    severity: Severity
    code: str
    message: str
    related: list[RelatedDiagnostic] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "range": self.range.to_dict(),
        }
        if self.related:
            data["related"] = [related.to_dict() for related in self.related]
        return data

    def format_pretty(self) -> str:
        """Render as ``line:column severity code message`` with one-based numbers."""
        start = self.range.start
        return (
            f"{start.line + 1}:{start.character + 1} "
            f"{self.severity.value} {self.code} {self.message}"
        )


class DiagnosticSink:
    """Accumulates diagnostics, converting spans to ranges on the way in.

    Args:
        source_map: Map used to turn spans into line/column ranges.
        diagnostics: Existing diagnostics to extend, if any.
    """

    def __init__(self, source_map: SourceMap, diagnostics: list[Diagnostic] | None = None):
        self.source_map = source_map
        self.diagnostics: list[Diagnostic] = list(diagnostics or [])

    @property
    def limit(self) -> int:
        """Length of the source; spans reported here never extend past it."""
        return len(self.source_map.source)

    def span(self, start: int, end: int) -> Span:
        return Span.clamped(start, end, self.limit)

    def error(self, span: Span, code: str, message: str) -> Diagnostic:
        return self.push(span, Severity.ERROR, code, message)

    def warning(self, span: Span, code: str, message: str) -> Diagnostic:
        return self.push(span, Severity.WARNING, code, message)

    def push(
        self,
        span: Span,
        severity: Severity,
        code: str,
        message: str,
        related: list[RelatedDiagnostic] | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            range=self.source_map.range(span),
            severity=severity,
            code=code,
            message=message,
            related=list(related or []),
        )
        self.diagnostics.append(diagnostic)
        return diagnostic


def has_errors(diagnostics: list[Diagnostic]) -> bool:
    return any(diagnostic.is_error for diagnostic in diagnostics)
