# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the config loader.

We test:
  1. Valid YAML loads into a frozen, correct config object
  2. Command-line overrides win, but unset (None) flags never mask the file
  3. Unknown fields and bad values raise ConfigValidationError
  4. Broken or missing files raise ConfigLoadError
"""

import textwrap
from pathlib import Path

import pytest

from cargo_apply.config.exceptions import ConfigLoadError, ConfigValidationError
from cargo_apply.config.loader import build_config
from cargo_apply.config.schema import DEFAULT_INDEX_URL


class TestLoadValidConfig:
    def test_loads_minimal_valid_config(self, tmp_config_file: Path, tmp_path: Path) -> None:
        config = build_config(tmp_config_file)
        assert config.global_config.log_level == "DEBUG"
        assert config.run.out_dir == str(tmp_path / "configured")
        assert config.run.run_tests is True

    def test_defaults_without_a_file(self) -> None:
        config = build_config()
        assert config.global_config.log_level == "INFO"
        assert config.run.out_dir == "work"
        assert config.run.isolation == "subprocess"
        assert config.run.index_url == DEFAULT_INDEX_URL
        assert config.run.attempt_timeout_seconds is None
        assert config.run.update_index is True

    def test_empty_file_means_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        assert build_config(config_file).run.force is False


class TestOverrides:
    def test_flags_override_file(self, tmp_config_file: Path) -> None:
        config = build_config(
            tmp_config_file,
            run_overrides={"out_dir": "elsewhere", "release": True},
            global_overrides={"log_level": "ERROR"},
        )
        assert config.run.out_dir == "elsewhere"
        assert config.run.release is True
        assert config.global_config.log_level == "ERROR"

    def test_unset_flags_do_not_mask_file(self, tmp_config_file: Path) -> None:
        config = build_config(tmp_config_file, run_overrides={"run_tests": None, "out_dir": None})
        assert config.run.run_tests is True
        assert config.run.out_dir.endswith("configured")

    def test_false_is_a_real_override(self, tmp_config_file: Path) -> None:
        config = build_config(tmp_config_file, run_overrides={"run_tests": False})
        assert config.run.run_tests is False


class TestLoadInvalidConfig:
    def test_unknown_field_raises_validation_error(self, invalid_config_file: Path) -> None:
        with pytest.raises(ConfigValidationError):
            build_config(invalid_config_file)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"isolation": "threads"},
            {"attempt_timeout_seconds": 0},
            {"run_tests": "sometimes"},
        ],
    )
    def test_bad_values_raise_validation_error(self, overrides: dict) -> None:
        with pytest.raises(ConfigValidationError):
            build_config(run_overrides=overrides)

    def test_bad_log_level_raises_validation_error(self) -> None:
        with pytest.raises(ConfigValidationError):
            build_config(global_overrides={"log_level": "LOUD"})

    def test_section_that_is_not_a_mapping(self, tmp_path: Path) -> None:
        config_file = tmp_path / "scalar_section.yaml"
        config_file.write_text(textwrap.dedent("""\
            run: fast
        """), encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            build_config(config_file, run_overrides={"force": True})

    def test_broken_yaml_raises_load_error(self, broken_yaml_file: Path) -> None:
        with pytest.raises(ConfigLoadError):
            build_config(broken_yaml_file)

    def test_nonexistent_file_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError):
            build_config(tmp_path / "does_not_exist.yaml")

    def test_directory_path_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError):
            build_config(tmp_path)

    def test_top_level_list_raises_load_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            build_config(config_file)


class TestConfigImmutability:
    def test_cannot_mutate_frozen_config(self, tmp_config_file: Path) -> None:
        config = build_config(tmp_config_file)
        with pytest.raises(Exception):
            config.run.force = True  # type: ignore[misc]
