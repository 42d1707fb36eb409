"""
Renders a TypMark file to an HTML fragment.
Reads from a file argument or stdin and writes HTML to stdout or `--output`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from .config import ConfigError, TypmarkConfig, build_config
from .diagnostics import Diagnostic
from .emitter import HtmlEmitOptions
from .exceptions import SourceTooLargeError
from .filesystem import STDIN_PATH, get_max_file_size, read_source, write_output
from .math import CachedMathRenderer, MathRenderer
from .pipeline import render

__all__ = ["cli"]


def _build_math_renderer(config: TypmarkConfig) -> MathRenderer | None:
    if config.math == "none":
        return None
    try:
        from .typst_math import TypstBackend
    except ImportError as error:
        raise click.ClickException(
            "Typst math requires the `typst` package: pip install 'typmark[math]'"
        ) from error
    font_paths = config.math_font_paths or None
    return CachedMathRenderer(TypstBackend(font_paths))


def _echo_diagnostics(diagnostics: list[Diagnostic], output_format: str | None) -> None:
    if output_format == "json":
        payload = [diagnostic.to_dict() for diagnostic in diagnostics]
        click.echo(json.dumps(payload, ensure_ascii=False), err=True)
    elif output_format == "pretty":
        for diagnostic in diagnostics:
            click.echo(diagnostic.format_pretty(), err=True)


@click.command()
@click.version_option()
@click.option("--sanitized", is_flag=True, help="Sanitize the HTML with an allow-list")
@click.option("--simple-code", is_flag=True, help="Emit fenced code as plain <pre><code>")
@click.option("--no-section-wrap", is_flag=True, help="Do not wrap sections in <section>")
@click.option("--source-map", is_flag=True, help="Add data-tm-range attributes to tags")
@click.option(
    "--diagnostics",
    type=click.Choice(["json", "pretty"]),
    help="Print diagnostics to stderr (json or pretty)",
)
@click.option("--math", type=click.Choice(["none", "typst"]), help="Math backend")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write HTML to a file")
@click.argument("input_path", metavar="[INPUT]", required=False)
def cli(
    input_path: str | None = None,
    sanitized: bool = False,
    simple_code: bool = False,
    no_section_wrap: bool = False,
    source_map: bool = False,
    diagnostics: str | None = None,
    math: str | None = None,
    output: str | None = None,
):
    """
    Entry point for rendering TypMark to HTML.

    Args:
        input_path: Path to the TypMark file; stdin when omitted or ``-``.
        sanitized: Sanitize the HTML with the allow-list sanitizer.
        simple_code: Emit fenced code blocks as plain ``<pre><code>``.
        no_section_wrap: Emit headings without ``<section>`` wrappers.
        source_map: Add ``data-tm-range`` attributes to emitted tags.
        diagnostics: Diagnostics format written to stderr.
        math: Math backend (`none` or `typst`).
        output: File receiving the HTML instead of stdout.

    Returns:
        None. Exits with status 1 when any error diagnostic was reported.

    Raises:
        click.BadParameter: If configuration values are invalid.
        click.ClickException: If the input cannot be read, is too large, or
            the math backend is unavailable.

    Examples:
        typmark notes.tmd --diagnostics pretty --sanitized
    """
    if input_path is None or input_path == STDIN_PATH:
        search_path = Path.cwd()
    else:
        search_path = Path(input_path).expanduser().parent

    try:
        config = build_config(
            search_path,
            sanitized=sanitized or None,
            simple_code_blocks=simple_code or None,
            wrap_sections=False if no_section_wrap else None,
            source_map=source_map or None,
            diagnostics=diagnostics,
            math=math,
        )
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error

    try:
        max_file_size = get_max_file_size(default=config.max_file_size)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    try:
        source = read_source(input_path, max_file_size, click.get_binary_stream("stdin"))
    except (IOError, SourceTooLargeError) as error:
        raise click.ClickException(str(error)) from error

    options = HtmlEmitOptions(
        wrap_sections=config.wrap_sections,
        simple_code_blocks=config.simple_code_blocks,
    )
    result = render(
        source,
        options,
        sanitized=config.sanitized,
        source_map=config.source_map,
        math_renderer=_build_math_renderer(config),
    )

    _echo_diagnostics(result.diagnostics, config.diagnostics)

    if output is not None:
        try:
            write_output(output, result.html + "\n")
        except IOError as error:
            raise click.ClickException(str(error)) from error
    else:
        click.echo(result.html)

    if result.has_errors:
        sys.exit(1)


if __name__ == "__main__":
    cli()
