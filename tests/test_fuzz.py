from __future__ import annotations

import os

import pytest

from typmark import render, sanitize_html

atheris = pytest.importorskip("atheris")

_FRAGMENTS = [
    "# ",
    "## ",
    "{#a}\n",
    "{hl=1:x}",
    "```py",
    "```",
    ":::box ",
    ":::",
    "$$",
    "$",
    "@a",
    "@a[",
    "]",
    "- [ ] ",
    "> ",
    "| a | b |\n|---|---|\n",
    "[x]: /url\n",
    "<div>",
    "\n",
    "\n\n",
]


def test_render_with_fuzzed_bytes():
    provider = atheris.FuzzedDataProvider(os.urandom(4096))
    rendered = 0

    while provider.remaining_bytes() > 0 and rendered < 64:
        data = provider.ConsumeBytes(provider.ConsumeIntInRange(0, 128))
        result = render(data)
        assert not result.html.endswith("\n")
        rendered += 1

    assert rendered


def test_render_with_fuzzed_markup():
    provider = atheris.FuzzedDataProvider(os.urandom(4096))
    pieces: list[str] = []

    while provider.remaining_bytes() > 0 and len(pieces) < 256:
        if provider.ConsumeBool():
            pieces.append(_FRAGMENTS[provider.ConsumeIntInRange(0, len(_FRAGMENTS) - 1)])
        else:
            pieces.append(provider.ConsumeUnicodeNoSurrogates(8))

    source = "".join(pieces)
    result = render(source)
    assert render(source).html == result.html

    sanitized = sanitize_html(result.html)
    assert "<script" not in sanitized
