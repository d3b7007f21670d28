# pyright: reportAny=false, reportUnknownArgumentType=false
import copy
from pathlib import Path

import pytest

from sealedsecret.config import (
    deep_merge,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from sealedsecret.exceptions import ConfigLoadError


class TestReadTomlFile:
    def test_parses_valid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('[git]\nurl = "https://x/y.git"\n')

        assert read_toml_file(path) == {"git": {"url": "https://x/y.git"}}

    def test_raises_file_not_found_for_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            _ = read_toml_file(tmp_path / "missing.toml")

    def test_raises_config_load_error_with_position(self, tmp_path: Path) -> None:
        path = tmp_path / "invalid.toml"
        path.write_text('[git]\nurl = "x"\n\n[invalid section\n')

        with pytest.raises(ConfigLoadError) as exc_info:
            _ = read_toml_file(path)

        error = exc_info.value
        assert error.path == path
        assert error.line == 4
        assert error.column is not None
        assert error.__cause__ is not None


class TestDeepMerge:
    def test_nested_override(self) -> None:
        base = {"git": {"url": "a", "target_branch": "main"}, "logging": {"level": "info"}}
        override = {"git": {"url": "b"}}

        result = deep_merge(base, override)

        assert result == {
            "git": {"url": "b", "target_branch": "main"},
            "logging": {"level": "info"},
        }

    def test_non_dict_replaces(self) -> None:
        assert deep_merge({"a": {"b": 1}}, {"a": 2}) == {"a": 2}

    def test_inputs_are_not_modified(self) -> None:
        base = {"a": {"b": [1, 2]}}
        override = {"a": {"c": 3}}
        base_copy = copy.deepcopy(base)
        override_copy = copy.deepcopy(override)

        result = deep_merge(base, override)
        result["a"]["b"].append(3)

        assert base == base_copy
        assert override == override_copy


class TestParseEnvVars:
    def test_maps_sections_and_keys(self) -> None:
        environ = {
            "SEALEDSECRET_GIT__URL": "https://x/y.git",
            "SEALEDSECRET_GIT__SOURCE_BRANCH": "sealed",
            "SEALEDSECRET_CONTROLLER__APPLY_TIMEOUT": "30",
            "HOME": "/root",
        }

        assert parse_env_vars(environ=environ) == {
            "git": {"url": "https://x/y.git", "source_branch": "sealed"},
            "controller": {"apply_timeout": "30"},
        }

    def test_ignores_logging_switches(self) -> None:
        environ = {"SEALEDSECRET_DEBUG": "1", "SEALEDSECRET_LOG_LEVEL": "debug"}

        assert parse_env_vars(environ=environ) == {}

    def test_keeps_values_as_strings(self) -> None:
        environ = {"SEALEDSECRET_GIT__TOKEN": "0"}

        assert parse_env_vars(environ=environ) == {"git": {"token": "0"}}

    def test_custom_prefix(self) -> None:
        environ = {"APP_GIT__URL": "u", "SEALEDSECRET_GIT__URL": "v"}

        assert parse_env_vars("APP_", environ) == {"git": {"url": "u"}}


class TestSetNestedKey:
    def test_creates_intermediate_dicts(self) -> None:
        d: dict[str, object] = {}

        set_nested_key(d, "a.b.c", 1)

        assert d == {"a": {"b": {"c": 1}}}

    def test_replaces_non_dict_intermediate(self) -> None:
        d: dict[str, object] = {"a": "scalar"}

        set_nested_key(d, "a.b", 1)

        assert d == {"a": {"b": 1}}
