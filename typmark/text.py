"""Character-level helpers shared by the block and inline parsers."""

from __future__ import annotations

import string
from html.entities import html5

ASCII_PUNCTUATION = frozenset(string.punctuation)
ASCII_WHITESPACE = frozenset(" \t\n\r\x0c")

_EMAIL_LOCAL_EXTRA = frozenset("!#$%&'*+-/=?^_`{|}~.")


def is_ascii_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def is_ascii_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def is_space_or_tab(char: str) -> bool:
    return char in (" ", "\t")


def unescape_backslash_punct(text: str) -> str:
    """Drop backslashes that escape ASCII punctuation."""
    out: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "\\" and i + 1 < len(text) and text[i + 1] in ASCII_PUNCTUATION:
            out.append(text[i + 1])
            i += 2
            continue
        out.append(text[i])
        i += 1
    return "".join(out)


def decode_entity(text: str, start: int, end: int) -> tuple[str, int] | None:
    """Decode an HTML character reference starting at `start`.

    Numeric references are limited to 7 decimal or 6 hexadecimal digits. Code
    points that are zero, surrogates, or out of range decode to U+FFFD. Named
    references must be terminated by ``;`` and known to HTML5.

    Args:
        text: Text containing the reference.
        start: Index of the ``&``.
        end: Index past the last character that may be consumed.

    Returns:
        tuple[str, int] | None: The decoded text and the index after the
            reference, or None if no reference starts at `start`.
    """
    if start + 2 >= end or text[start] != "&":
        return None
    i = start + 1
    if text[i] == "#":
        i += 1
        radix = 10
        if i < end and text[i] in ("x", "X"):
            radix = 16
            i += 1
        digits_start = i
        while i < end and text[i] in string.hexdigits:
            i += 1
        if i == digits_start or i >= end or text[i] != ";":
            return None
        digits = text[digits_start:i]
        if len(digits) > (6 if radix == 16 else 7):
            return None
        try:
            value = int(digits, radix)
        except ValueError:
            return None
        if value == 0 or 0xD800 <= value <= 0xDFFF or value > 0x10FFFF:
            return "�", i + 1
        return chr(value), i + 1

    name_start = i
    while i < end and is_ascii_alnum(text[i]):
        i += 1
    if i == name_start or i >= end or text[i] != ";":
        return None
    decoded = html5.get(text[name_start:i] + ";")
    if decoded is None:
        return None
    return decoded, i + 1


def unescape_and_decode(text: str) -> str:
    """Apply backslash escapes and decode character references.

    An escaped ``&`` stays literal and never starts a reference.

    Examples:
        unescape_and_decode(r"\\*a&amp;b")  # "*a&b"
    """
    out: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\":
            if i + 1 < len(text) and text[i + 1] in ASCII_PUNCTUATION:
                out.append(text[i + 1])
                i += 2
            else:
                out.append("\\")
                i += 1
            continue
        if char == "&":
            decoded = decode_entity(text, i, len(text))
            if decoded is not None:
                out.append(decoded[0])
                i = decoded[1]
                continue
        out.append(char)
        i += 1
    return "".join(out)


def percent_encode_url(url: str) -> str:
    """Percent-encode spaces and non-ASCII characters as UTF-8 bytes."""
    out: list[str] = []
    for char in url:
        if char == " ":
            out.append("%20")
        elif char.isascii():
            out.append(char)
        else:
            out.extend(f"%{byte:02X}" for byte in char.encode("utf-8", "surrogatepass"))
    return "".join(out)


def percent_encode_autolink_url(url: str) -> str:
    encoded = percent_encode_url(url)
    return encoded.replace("\\", "%5C").replace("[", "%5B").replace("]", "%5D")


def is_autolink_scheme(value: str) -> bool:
    """Return True for ``scheme:rest`` where the scheme has at least two characters."""
    if not value or not is_ascii_alpha(value[0]):
        return False
    for i, char in enumerate(value):
        if char == ":":
            return i >= 2 and i + 1 < len(value)
        if not (is_ascii_alnum(char) or char in "+-."):
            return False
    return False


def is_autolink_email(value: str) -> bool:
    parts = value.split("@")
    if len(parts) != 2:
        return False
    local, domain = parts
    if not local or not domain:
        return False
    if not all(is_ascii_alnum(char) or char in _EMAIL_LOCAL_EXTRA for char in local):
        return False
    has_dot = False
    for index, char in enumerate(domain):
        if not (is_ascii_alnum(char) or char in ".-"):
            return False
        if char == ".":
            if index == 0:
                return False
            has_dot = True
    return has_dot and not domain.endswith(".")


def escape_html(text: str) -> str:
    """Escape ``&``, ``<``, ``>`` and ``"`` for text and attribute values."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
