"""Tests for engine configuration loading."""

from pathlib import Path

import pytest

from scenario_engine.config import EngineConfig, config_from_dict, load_config
from scenario_engine.errors import ConfigError


def test_defaults_without_file(tmp_path):
    config = load_config(project_root=tmp_path)
    assert config == EngineConfig()
    assert config.file_patterns == ["scen.yaml", "scen.yml"]
    assert config.max_suggestions == 3


def test_loads_project_file(tmp_path):
    (tmp_path / "scenario-engine.yaml").write_text(
        "scan_directory: scenarios\n"
        "scenario_language: RU\n"
        "parameter_exclusions: ['[ТекущаяДата]']\n"
        "strong_match_threshold: 1\n"
        "unknown_key: ignored\n",
        encoding="utf-8",
    )
    config = load_config(project_root=tmp_path)

    assert config.scan_directory == "scenarios"
    assert config.scenario_language == "ru"
    assert config.parameter_exclusions == ["[ТекущаяДата]"]
    assert config.strong_match_threshold == 1
    assert config.scan_root(tmp_path) == tmp_path / "scenarios"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == EngineConfig()


def test_explicit_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_malformed_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("scan_directory: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


@pytest.mark.parametrize("data", [
    {"max_suggestions": "3"},
    {"max_suggestions": True},
    {"file_patterns": "scen.yaml"},
    {"file_patterns": ["ok", 1]},
    {"check_related_parents": "yes"},
])
def test_invalid_types(data):
    with pytest.raises(ConfigError):
        config_from_dict(data)


def test_not_a_mapping():
    with pytest.raises(ConfigError, match="mapping"):
        config_from_dict(["scan_directory"])


def test_invalid_values():
    with pytest.raises(ConfigError):
        EngineConfig(scenario_language="de")
    with pytest.raises(ConfigError):
        EngineConfig(max_suggestions=0)


def test_absolute_scan_directory(tmp_path):
    config = EngineConfig(scan_directory=str(tmp_path))
    assert config.scan_root(Path("/elsewhere")) == tmp_path
