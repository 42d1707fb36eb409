"""Label validation and link-label normalization."""

from __future__ import annotations

from .text import ASCII_WHITESPACE, is_ascii_alnum

LABEL_ESCAPES = frozenset("[]\\")


def is_label_char(char: str) -> bool:
    return is_ascii_alnum(char) or char in ("_", "-")


def is_valid_label(name: str) -> bool:
    """Return True if `name` is a non-empty run of ``[A-Za-z0-9_-]``."""
    return bool(name) and all(is_label_char(char) for char in name)


def scan_label(text: str, start: int, end: int) -> tuple[str, int] | None:
    """Scan a label starting at `start`.

    Returns:
        tuple[str, int] | None: The label and the index after it, or None if
            no label character is found at `start`.
    """
    i = start
    while i < end and is_label_char(text[i]):
        i += 1
    if i == start:
        return None
    return text[start:i], i


def normalize_link_label(label: str) -> str:
    """Normalize a reference-link label for matching.

    Escaped brackets and backslashes are unescaped, runs of whitespace become a
    single space, surrounding whitespace is dropped, and the result is
    case-folded (``ß`` matches ``ss``).

    Examples:
        normalize_link_label("  Foo\\n  BAR ")  # "foo bar"
    """
    out: list[str] = []
    escaped = False
    last_space = False
    for index, char in enumerate(label):
        if escaped:
            out.append(char)
            escaped = False
            last_space = False
            continue
        if char == "\\":
            if index + 1 < len(label) and label[index + 1] in LABEL_ESCAPES:
                escaped = True
                continue
            out.append("\\")
            last_space = False
            continue
        if char in ASCII_WHITESPACE:
            if out and not last_space:
                out.append(" ")
                last_space = True
            continue
        last_space = False
        out.append(char)
    if escaped:
        out.append("\\")
    if out and out[-1] == " ":
        out.pop()
    return "".join(out).lower().replace("ß", "ss").replace("ẞ", "ss")


def has_unescaped_brackets(text: str) -> bool:
    escaped = False
    i = 0
    while i < len(text):
        char = text[i]
        if escaped:
            escaped = False
        elif char == "\\" and i + 1 < len(text) and text[i + 1] in LABEL_ESCAPES:
            escaped = True
        elif char in "[]":
            return True
        i += 1
    return False
