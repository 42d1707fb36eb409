"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
import tomllib

from .exceptions import TypmarkError

DIAGNOSTICS_FORMATS = ("json", "pretty")
MATH_BACKENDS = ("none", "typst")


@dataclass
class TypmarkConfig:
    """Configuration for rendering TypMark files.

    Attributes:
        sanitized: Pass emitted HTML through the allow-list sanitizer.
        simple_code_blocks: Emit fenced code as plain ``<pre><code>``.
        wrap_sections: Wrap sections in ``<section>`` elements.
        source_map: Add ``data-tm-range`` attributes to emitted tags.
        diagnostics: Diagnostics output format (``"json"`` or ``"pretty"``);
            None disables diagnostics output.
        math: Math backend name (``"none"`` or ``"typst"``).
        math_font_paths: Font files or directories handed to the math backend.
        max_file_size: Maximum input size in bytes.

    Examples:
        TypmarkConfig(sanitized=True, diagnostics="pretty")
    """

    # Output
    sanitized: bool = False
    simple_code_blocks: bool = False
    wrap_sections: bool = True
    source_map: bool = False
    diagnostics: str | None = None

    # Math
    math: str = "none"
    math_font_paths: list[str] = field(default_factory=list)

    # Limits
    max_file_size: int = 10 * 1024 * 1024


class ConfigError(TypmarkError):
    """Exception raised when configuration values are invalid.

    Attributes:
        args: Arguments provided to the underlying `ValueError`.

    Examples:
        raise ConfigError("`math` must be one of: none, typst")
    """


def load_config(search_path: Path) -> TypmarkConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.typmark]`` table from `pyproject.toml` and the ``[typmark]`` or
    ``[tool.typmark]`` table from `.typmark.toml` when present. Returns default
    values when no configuration is found. TOML files that cannot be read or
    decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        TypmarkConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If the table is present but not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path("docs"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "typmark")]
        )
        if pyproject_config is not None:
            return normalize_config(pyproject_config)

        dotfile_config = _load_from_file(
            current / ".typmark.toml",
            table_paths=[("typmark",), ("tool", "typmark")],
        )
        if dotfile_config is not None:
            return normalize_config(dotfile_config)

        parent = current.parent
        if parent == current:
            break
        current = parent

    return TypmarkConfig()


_MISSING = object()


def _load_from_file(config_file: Path, table_paths: list[tuple[str, ...]]) -> TypmarkConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> TypmarkConfig:
    table_display = ".".join(table_path)

    if raw_config is None:
        return TypmarkConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    if not raw_config:
        return TypmarkConfig()

    # TOML keys may use dashes, as in `simple-code-blocks`.
    fields = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        return TypmarkConfig(**fields)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def normalize_config(config: TypmarkConfig) -> TypmarkConfig:
    diagnostics = config.diagnostics
    if isinstance(diagnostics, str):
        diagnostics = diagnostics.lower()

    math = config.math
    if isinstance(math, str):
        math = math.lower()

    math_font_paths = config.math_font_paths
    if isinstance(math_font_paths, str):
        math_font_paths = [math_font_paths]

    return replace(config, diagnostics=diagnostics, math=math, math_font_paths=math_font_paths)


def validate_config(config: TypmarkConfig) -> None:
    """Validate a `TypmarkConfig` instance.

    Args:
        config: Configuration to validate.

    Returns:
        None.

    Raises:
        ConfigError: If switches are not booleans, choice values are unknown,
            font paths are not strings, or the size limit is not a positive
            integer.

    Examples:
        validate_config(TypmarkConfig(math="typst"))
    """
    config = normalize_config(config)

    for key in ("sanitized", "simple_code_blocks", "wrap_sections", "source_map"):
        if not isinstance(getattr(config, key), bool):
            raise ConfigError(f"`{key}` must be a boolean")

    if config.diagnostics is not None and config.diagnostics not in DIAGNOSTICS_FORMATS:
        raise ConfigError(f"`diagnostics` must be one of: {', '.join(DIAGNOSTICS_FORMATS)}")
    if config.math not in MATH_BACKENDS:
        raise ConfigError(f"`math` must be one of: {', '.join(MATH_BACKENDS)}")

    if not isinstance(config.math_font_paths, list) or not all(
        isinstance(path, str) for path in config.math_font_paths
    ):
        raise ConfigError("`math_font_paths` must be a list of strings")

    _ensure_integers({"max_file_size": config.max_file_size})
    _ensure_positive({"max_file_size": config.max_file_size})


def apply_overrides(config: TypmarkConfig, **overrides: object) -> TypmarkConfig:
    """Apply override values to a `TypmarkConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        TypmarkConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `TypmarkConfig`.

    Examples:
        updated = apply_overrides(config, sanitized=True, diagnostics="json")
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> TypmarkConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        TypmarkConfig: Validated configuration ready for rendering.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), sanitized=True)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
