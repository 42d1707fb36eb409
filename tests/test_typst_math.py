from __future__ import annotations

import os
from pathlib import Path

import pytest

pytest.importorskip("typst")

from typmark.typst_math import (  # noqa: E402
    FONT_PATHS_ENV_VAR,
    TypstBackend,
    expand_font_paths,
    font_paths_from_env,
)


def test_expand_font_paths_lists_directory_fonts(tmp_path: Path):
    (tmp_path / "b.otf").write_bytes(b"")
    (tmp_path / "a.ttf").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("not a font", encoding="utf-8")
    single = tmp_path / "single.ttc"
    single.write_bytes(b"")

    paths = expand_font_paths([str(tmp_path), str(single), str(tmp_path / "missing"), ""])

    assert paths == [
        str(tmp_path / "a.ttf"),
        str(tmp_path / "b.otf"),
        str(tmp_path / "single.ttc"),
        str(single),
    ]


def test_font_paths_from_env(monkeypatch, tmp_path: Path):
    font = tmp_path / "math.otf"
    font.write_bytes(b"")
    monkeypatch.setenv(FONT_PATHS_ENV_VAR, os.pathsep.join([str(font), str(tmp_path / "nope")]))

    assert font_paths_from_env() == [str(font)]


def test_font_paths_from_env_unset(monkeypatch):
    monkeypatch.delenv(FONT_PATHS_ENV_VAR, raising=False)

    assert font_paths_from_env() == []


def test_backend_uses_env_fonts_by_default(monkeypatch, tmp_path: Path):
    font = tmp_path / "math.otf"
    font.write_bytes(b"")
    monkeypatch.setenv(FONT_PATHS_ENV_VAR, str(font))

    assert TypstBackend().font_paths == [str(font)]
    assert TypstBackend([]).font_paths == []
