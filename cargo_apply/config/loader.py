# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: YAML on disk plus command-line overrides, validated into a
frozen ApplyConfig.

The pipeline is linear:
  1. Read and parse the YAML file (if one was given)
  2. Lay the command-line overrides over its `run` / `global` sections
  3. Validate the merged dict with pydantic
  4. Return the frozen result

Any failure stops the run before a single package is touched.
"""

from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from cargo_apply.config.exceptions import ConfigLoadError, ConfigValidationError
from cargo_apply.config.schema import ApplyConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed mapping.

    Raises:
        ConfigLoadError: The file is missing, unreadable, not YAML, or not a mapping.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    # An empty file is a valid "use all defaults" config.
    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def _merge_section(
    raw: dict[str, Any],
    section: str,
    overrides: Mapping[str, Any],
) -> None:
    """Apply non-None overrides on top of one section of the raw dict."""
    present = {key: value for key, value in overrides.items() if value is not None}
    if not present:
        return

    current = raw.get(section) or {}
    if not isinstance(current, dict):
        raise ConfigValidationError(f"'{section}' must be a mapping, got {type(current).__name__}")
    raw[section] = {**current, **present}


def build_config(
    config_path: Optional[Path] = None,
    run_overrides: Optional[Mapping[str, Any]] = None,
    global_overrides: Optional[Mapping[str, Any]] = None,
) -> ApplyConfig:
    """
    Build the validated configuration for one run.

    Args:
        config_path: Optional YAML file. Without one, defaults are used.
        run_overrides: Values for the `run` section, typically from CLI flags.
            Keys mapped to None are ignored, so an unset flag never masks a
            value from the file.
        global_overrides: Same, for the `global` section.

    Returns:
        A frozen ApplyConfig.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations in the merged values.
    """
    raw_data: dict[str, Any] = {}
    if config_path is not None:
        raw_data = _read_yaml_file(config_path)

    _merge_section(raw_data, "run", run_overrides or {})
    _merge_section(raw_data, "global", global_overrides or {})

    source = str(config_path) if config_path is not None else "command line"
    try:
        return ApplyConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {source}:\n{err}"
        ) from err
