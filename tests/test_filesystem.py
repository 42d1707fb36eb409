from __future__ import annotations

import io
from pathlib import Path

import pytest

from typmark.exceptions import SourceTooLargeError
from typmark.filesystem import (
    DEFAULT_MAX_FILE_SIZE,
    MAX_FILE_SIZE_ENV_VAR,
    collect_file_stat,
    enforce_file_size,
    get_max_file_size,
    read_source,
    write_output,
)


def test_get_max_file_size_defaults(monkeypatch):
    monkeypatch.delenv(MAX_FILE_SIZE_ENV_VAR, raising=False)

    assert get_max_file_size() == DEFAULT_MAX_FILE_SIZE
    assert get_max_file_size(default=5) == 5


def test_get_max_file_size_reads_env(monkeypatch):
    monkeypatch.setenv(MAX_FILE_SIZE_ENV_VAR, "2048")

    assert get_max_file_size(default=5) == 2048


@pytest.mark.parametrize(
    "value, message",
    [
        ("abc", "Invalid value for TYPMARK_MAX_FILE_SIZE"),
        ("0", "must be a positive integer"),
        ("-4", "must be a positive integer"),
    ],
)
def test_get_max_file_size_rejects_invalid_env(monkeypatch, value, message):
    monkeypatch.setenv(MAX_FILE_SIZE_ENV_VAR, value)

    with pytest.raises(ValueError, match=message):
        get_max_file_size()


def test_read_source_from_file(tmp_path: Path):
    path = tmp_path / "doc.tmd"
    path.write_bytes("# Café\n".encode("utf-8"))

    assert read_source(str(path), max_size=100) == "# Café\n".encode("utf-8")


def test_read_source_from_stdin():
    stream = io.BytesIO(b"Hello\n")

    assert read_source(None, max_size=100, stdin=stream) == b"Hello\n"
    assert read_source("-", max_size=100, stdin=io.BytesIO(b"x")) == b"x"


def test_read_source_rejects_large_file(tmp_path: Path):
    path = tmp_path / "big.tmd"
    path.write_bytes(b"x" * 11)

    with pytest.raises(SourceTooLargeError) as excinfo:
        read_source(str(path), max_size=10)

    assert excinfo.value.size == 11
    assert excinfo.value.limit == 10


def test_read_source_rejects_large_stdin():
    with pytest.raises(SourceTooLargeError):
        read_source(None, max_size=4, stdin=io.BytesIO(b"12345678"))


def test_read_source_accepts_input_at_limit():
    assert read_source(None, max_size=4, stdin=io.BytesIO(b"1234")) == b"1234"


def test_read_source_missing_file(tmp_path: Path):
    with pytest.raises(IOError, match="Error accessing"):
        read_source(str(tmp_path / "missing.tmd"), max_size=10)


def test_collect_file_stat_rejects_directory(tmp_path: Path):
    with pytest.raises(IOError, match="not a regular file"):
        collect_file_stat(tmp_path)


def test_read_source_without_stdin():
    with pytest.raises(IOError, match="No input stream"):
        read_source(None, max_size=10)


def test_enforce_file_size_message():
    with pytest.raises(SourceTooLargeError, match="exceeds the limit of 3 bytes"):
        enforce_file_size(4, 3)


def test_write_output(tmp_path: Path):
    path = tmp_path / "out.html"

    write_output(str(path), "<p>é</p>\n")

    assert path.read_text(encoding="utf-8") == "<p>é</p>\n"


def test_write_output_failure(tmp_path: Path):
    with pytest.raises(IOError, match="Error writing"):
        write_output(str(tmp_path / "missing" / "out.html"), "x")
