"""Recognition of raw HTML blocks and tags."""

from __future__ import annotations

from dataclasses import dataclass

from .lines import strip_indent_up_to
from .text import ASCII_WHITESPACE, is_ascii_alnum, is_ascii_alpha, is_space_or_tab

HTML_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "base", "basefont", "blockquote", "body",
        "caption", "center", "col", "colgroup", "dd", "details", "dialog", "dir",
        "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
        "frame", "frameset", "h1", "h2", "h3", "h4", "h5", "h6", "head", "header",
        "hr", "html", "iframe", "legend", "li", "link", "main", "menu", "menuitem",
        "nav", "noframes", "ol", "optgroup", "option", "p", "param", "search",
        "section", "source", "summary", "table", "tbody", "td", "tfoot", "th",
        "thead", "title", "tr", "track", "ul",
    }
)  # fmt: skip

RAW_TEXT_TAGS = ("pre", "script", "style", "textarea")


@dataclass(frozen=True)
class HtmlBlockKind:
    """One of the seven HTML block start conditions.

    Attributes:
        number: Start condition, 1 to 7.
        tag: Raw-text tag name for condition 1.
    """

    number: int
    tag: str | None = None

    @property
    def ends_at_blank_line(self) -> bool:
        return self.number in (6, 7)


@dataclass
class _TagName:
    name: str
    after: int
    closing: bool


def is_attr_name_start(char: str) -> bool:
    return is_ascii_alpha(char) or char in ("_", ":")


def is_attr_name_continue(char: str) -> bool:
    return is_ascii_alnum(char) or char in ("_", ":", ".", "-")


def _parse_tag_name(text: str) -> _TagName | None:
    if not text.startswith("<"):
        return None
    idx = 1
    closing = False
    if idx < len(text) and text[idx] == "/":
        closing = True
        idx += 1
    if idx >= len(text) or not is_ascii_alpha(text[idx]):
        return None
    start = idx
    idx += 1
    while idx < len(text) and (is_ascii_alnum(text[idx]) or text[idx] == "-"):
        idx += 1
    return _TagName(text[start:idx], idx, closing)


def _is_tag_boundary(text: str, idx: int) -> bool:
    return idx >= len(text) or text[idx] in ASCII_WHITESPACE or text[idx] in ">/"


def _self_closing_at(text: str, i: int, end: int) -> bool:
    return text[i] == "/" and i + 1 < end and text[i + 1] == ">"


def scan_html_tag(text: str, start: int, end: int) -> int | None:
    """Scan an open or close tag starting with ``<`` at `start`.

    Attribute values may be unquoted, single-quoted or double-quoted.

    Returns:
        int | None: Index of the final ``>`` of the tag, or None.
    """
    if end - start < 2 or text[start] != "<":
        return None
    i = start + 1
    closing = False
    if text[i] == "/":
        closing = True
        i += 1
    if i >= end or not is_ascii_alpha(text[i]):
        return None
    i += 1
    while i < end and (is_ascii_alnum(text[i]) or text[i] == "-"):
        i += 1
    if i >= end:
        return None
    if text[i] not in ASCII_WHITESPACE and text[i] != ">" and not _self_closing_at(text, i, end):
        return None

    if closing:
        while i < end and text[i] in ASCII_WHITESPACE:
            i += 1
        return i if i < end and text[i] == ">" else None

    while True:
        while i < end and text[i] in ASCII_WHITESPACE:
            i += 1
        if i >= end:
            return None
        if text[i] == ">":
            return i
        if _self_closing_at(text, i, end):
            return i + 1
        if not is_attr_name_start(text[i]):
            return None
        i += 1
        while i < end and is_attr_name_continue(text[i]):
            i += 1
        after_name = i
        ws = i
        while ws < end and text[ws] in ASCII_WHITESPACE:
            ws += 1
        if ws < end and text[ws] == "=":
            i = ws + 1
            while i < end and text[i] in ASCII_WHITESPACE:
                i += 1
            if i >= end:
                return None
            quote = text[i]
            if quote in ("'", '"'):
                closing_quote = text.find(quote, i + 1, end)
                if closing_quote < 0:
                    return None
                i = closing_quote + 1
            else:
                consumed = False
                while i < end:
                    char = text[i]
                    if char in ASCII_WHITESPACE or char == ">" or _self_closing_at(text, i, end):
                        break
                    if char in "\"'=<`":
                        return None
                    consumed = True
                    i += 1
                if not consumed:
                    return None
        else:
            i = after_name
        if i < end:
            char = text[i]
            if not (char in ASCII_WHITESPACE or char == ">" or _self_closing_at(text, i, end)):
                return None


def _raw_text_tag(text: str) -> str | None:
    tag = _parse_tag_name(text)
    if tag is None or tag.closing or not _is_tag_boundary(text, tag.after):
        return None
    name = tag.name.lower()
    return name if name in RAW_TEXT_TAGS else None


def _is_block_tag(text: str) -> bool:
    tag = _parse_tag_name(text)
    if tag is None or not _is_tag_boundary(text, tag.after):
        return False
    return tag.name.lower() in HTML_BLOCK_TAGS


def _is_complete_tag_line(text: str) -> bool:
    end = scan_html_tag(text, 0, len(text))
    if end is None:
        return False
    tag = _parse_tag_name(text)
    if tag is not None and tag.name.lower() in RAW_TEXT_TAGS:
        return False
    return all(is_space_or_tab(char) for char in text[end + 1 :])


def match_html_block_start(text: str) -> HtmlBlockKind | None:
    """Return the start condition an HTML block line satisfies, if any.

    Examples:
        match_html_block_start("<div>").number  # 6
        match_html_block_start("<!-- note").number  # 2
    """
    trimmed = strip_indent_up_to(text, 3)
    if not trimmed:
        return None
    raw_tag = _raw_text_tag(trimmed)
    if raw_tag is not None:
        return HtmlBlockKind(1, raw_tag)
    if trimmed.startswith("<!--"):
        return HtmlBlockKind(2)
    if trimmed.startswith("<?"):
        return HtmlBlockKind(3)
    if trimmed.startswith("<![CDATA["):
        return HtmlBlockKind(5)
    if trimmed.startswith("<!") and len(trimmed) > 2 and is_ascii_alpha(trimmed[2]):
        return HtmlBlockKind(4)
    if _is_block_tag(trimmed):
        return HtmlBlockKind(6)
    if _is_complete_tag_line(trimmed):
        return HtmlBlockKind(7)
    return None


def _contains_closing_tag(line: str, tag: str) -> bool:
    lower = line.lower()
    needle = f"</{tag}"
    search = 0
    while True:
        idx = lower.find(needle, search)
        if idx < 0:
            return False
        after = idx + len(needle)
        if after >= len(lower) or lower[after] == ">" or lower[after] in ASCII_WHITESPACE:
            return True
        search = after


def html_block_end(kind: HtmlBlockKind, line: str) -> bool:
    """Return True when `line` satisfies the end condition of `kind`."""
    if kind.number == 1:
        return _contains_closing_tag(line, kind.tag or "")
    if kind.number == 2:
        return "-->" in line
    if kind.number == 3:
        return "?>" in line
    if kind.number == 4:
        return ">" in line
    if kind.number == 5:
        return "]]>" in line
    return False
