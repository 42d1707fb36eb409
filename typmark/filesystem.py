"""Filesystem helpers for typmark."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import BinaryIO

from .exceptions import SourceTooLargeError

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILE_SIZE_ENV_VAR = "TYPMARK_MAX_FILE_SIZE"
STDIN_PATH = "-"


def get_max_file_size(default: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Resolve the maximum allowed input size.

    Args:
        default: Fallback value in bytes when the environment variable is unset.

    Returns:
        int: Maximum allowed input size in bytes.

    Raises:
        ValueError: If the environment value is not a positive integer.

    Examples:
        os.environ["TYPMARK_MAX_FILE_SIZE"] = "204800"
        limit = get_max_file_size(default=102400)
    """
    env_value = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if env_value is None:
        return default

    try:
        max_size = int(env_value)
    except ValueError as error:
        error_message = (
            f"Invalid value for {MAX_FILE_SIZE_ENV_VAR}: {env_value} (expected positive integer)"
        )
        raise ValueError(error_message) from error

    if max_size <= 0:
        error_message = f"{MAX_FILE_SIZE_ENV_VAR} must be a positive integer, got {max_size}."
        raise ValueError(error_message)

    return max_size


def collect_file_stat(filepath: Path) -> os.stat_result:
    """Return stat information for an input file.

    Args:
        filepath: Path to the file.

    Returns:
        os.stat_result: File metadata.

    Raises:
        IOError: If the path is inaccessible or not a regular file.

    Examples:
        stat_result = collect_file_stat(Path("notes.tmd"))
    """
    try:
        stat_result = os.stat(filepath)
    except OSError as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error

    if not stat.S_ISREG(stat_result.st_mode):
        error_message = f"{filepath} is not a regular file."
        raise IOError(error_message)

    return stat_result


def enforce_file_size(size: int, max_size: int) -> None:
    """Guard against inputs that exceed the configured maximum size.

    Raises:
        SourceTooLargeError: If `size` exceeds `max_size`.
    """
    if size > max_size:
        raise SourceTooLargeError(size, max_size)


def read_source(raw_path: str | None, max_size: int, stdin: BinaryIO | None = None) -> bytes:
    """Read TypMark source from a file or from standard input.

    Args:
        raw_path: Path to the input file; None or ``"-"`` reads `stdin`.
        max_size: Maximum allowed input size in bytes.
        stdin: Binary stream used for standard input.

    Returns:
        bytes: Raw source bytes; decoding is left to the parser.

    Raises:
        IOError: If the file is missing, inaccessible, or not a regular file.
        SourceTooLargeError: If the input exceeds `max_size`.

    Examples:
        source = read_source("notes.tmd", max_size=102400)
    """
    if raw_path is None or raw_path == STDIN_PATH:
        if stdin is None:
            raise IOError("No input stream available.")
        # One byte past the limit is enough to detect oversized input.
        data = stdin.read(max_size + 1)
        enforce_file_size(len(data), max_size)
        return data

    filepath = Path(raw_path).expanduser()
    stat_result = collect_file_stat(filepath)
    enforce_file_size(stat_result.st_size, max_size)
    try:
        with open(filepath, "rb") as stream:
            data = stream.read(max_size + 1)
    except OSError as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error
    enforce_file_size(len(data), max_size)
    return data


def write_output(raw_path: str, content: str) -> None:
    """Write rendered HTML to a file in UTF-8.

    Raises:
        IOError: If the file cannot be written.
    """
    filepath = Path(raw_path).expanduser()
    try:
        filepath.write_text(content, encoding="UTF-8")
    except OSError as error:
        error_message = f"Error writing {filepath}: {error}"
        raise IOError(error_message) from error
