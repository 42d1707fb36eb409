from __future__ import annotations

import json
import textwrap
from pathlib import Path

from typmark.cli import cli
from typmark.filesystem import MAX_FILE_SIZE_ENV_VAR


def _write(tmp_path: Path, filename: str, content: str) -> Path:
    path = tmp_path / filename
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


def _write_pyproject(base: Path, body: str) -> Path:
    path = base / "pyproject.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def test_cli_renders_file(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(
        tmp_path,
        "doc.tmd",
        """
        # Title

        Body.
        """,
    )

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 0
    assert result.output == "<section>\n  <h1>Title</h1>\n  <p>Body.</p>\n</section>\n"


def test_cli_reads_stdin(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, [], input="Paragraph.\n")

    assert result.exit_code == 0
    assert result.output == "<p>Paragraph.</p>\n"


def test_cli_reads_stdin_from_dash(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["-"], input="*hi*\n")

    assert result.exit_code == 0
    assert result.output == "<p><em>hi</em></p>\n"


def test_cli_writes_output_file(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.tmd", "Paragraph.\n")
    output = tmp_path / "doc.html"

    result = cli_runner.invoke(cli, [str(target), "--output", str(output)])

    assert result.exit_code == 0
    assert result.output == ""
    assert output.read_text(encoding="utf-8") == "<p>Paragraph.</p>\n"


def test_cli_exits_with_error_diagnostics(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.tmd", "{#p}\nParagraph.\n\n@p\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 1
    assert '<p id="p">Paragraph.</p>' in result.output


def test_cli_warnings_do_not_fail(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.tmd", "@missing[link]\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 0
    assert "ref-unresolved" in result.output


def test_cli_json_diagnostics(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.tmd", "{#p}\nParagraph.\n\n@p\n")
    output = tmp_path / "doc.html"

    result = cli_runner.invoke(
        cli, [str(target), "--diagnostics", "json", "--output", str(output)]
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert [item["code"] for item in payload] == ["E_REF_OMIT"]
    assert payload[0]["severity"] == "error"
    assert payload[0]["range"]["start"]["line"] == 3


def test_cli_pretty_diagnostics(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.tmd", "@missing[link]\n")
    output = tmp_path / "doc.html"

    result = cli_runner.invoke(
        cli, [str(target), "--diagnostics", "pretty", "--output", str(output)]
    )

    assert result.exit_code == 0
    assert result.output.startswith("1:1 warning W_REF_MISSING")


def test_cli_flags_change_markup(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(
        tmp_path,
        "doc.tmd",
        """
        # Title

        ```rs
        let x = 1;
        ```
        """,
    )

    result = cli_runner.invoke(cli, [str(target), "--no-section-wrap", "--simple-code"])

    assert result.exit_code == 0
    assert result.output.startswith("<h1>Title</h1>\n")
    assert '<pre><code class="language-rs">let x = 1;\n</code></pre>' in result.output


def test_cli_source_map_flag(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["--source-map"], input="Alpha\n")

    assert result.exit_code == 0
    assert 'data-tm-range="0:0-0:5"' in result.output


def test_cli_sanitized_flag(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["--sanitized"], input='<div onclick="x()">hi</div>\n')

    assert result.exit_code == 0
    assert "onclick" not in result.output


def test_cli_reads_config_from_pyproject(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.typmark]
        wrap_sections = false
        """,
    )
    target = _write(tmp_path, "doc.tmd", "# Title\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 0
    assert result.output == "<h1>Title</h1>\n"


def test_cli_rejects_invalid_config(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.typmark]
        math = "mathjax"
        """,
    )
    target = _write(tmp_path, "doc.tmd", "# Title\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 2
    assert "`math` must be one of" in result.output


def test_cli_missing_file(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, [str(tmp_path / "missing.tmd")])

    assert result.exit_code == 1
    assert "Error accessing" in result.output


def test_cli_rejects_large_input(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(MAX_FILE_SIZE_ENV_VAR, "8")
    target = _write(tmp_path, "doc.tmd", "A paragraph that is too long.\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 1
    assert "exceeds the limit of 8 bytes" in result.output


def test_cli_rejects_invalid_size_env(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(MAX_FILE_SIZE_ENV_VAR, "lots")

    result = cli_runner.invoke(cli, [], input="x\n")

    assert result.exit_code == 1
    assert "Invalid value for TYPMARK_MAX_FILE_SIZE" in result.output


def test_cli_rejects_unknown_diagnostics_format(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["--diagnostics", "xml"], input="x\n")

    assert result.exit_code == 2
