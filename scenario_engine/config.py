"""Engine configuration for scenario-engine.

Loads ``scenario-engine.yaml`` from the project root into an EngineConfig.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "scenario-engine.yaml"


@dataclass
class EngineConfig:
    """Settings shared by the index, regeneration and diagnostics."""
    scan_directory: str = "tests/RegressionTests/yaml"
    file_patterns: list[str] = field(default_factory=lambda: ["scen.yaml", "scen.yml"])
    scenario_language: str = "en"
    parameter_exclusions: list[str] = field(default_factory=list)
    strong_match_threshold: float = 0.85
    suggestion_threshold: float = 0.3
    step_suggestion_threshold: float = 0.25
    max_suggestions: int = 3
    related_max_files: int = 120
    scan_yield_every: int = 20
    related_yield_every: int = 10
    refresh_debounce: float = 0.5
    steps_file: Optional[str] = None
    check_related_parents: bool = True

    def __post_init__(self):
        self.scenario_language = self.scenario_language.lower()
        if self.scenario_language not in ("en", "ru"):
            raise ConfigError(f"scenario_language must be 'en' or 'ru', got: {self.scenario_language}")
        if self.max_suggestions < 1:
            raise ConfigError("max_suggestions must be at least 1")

    def scan_root(self, project_root: Union[str, Path]) -> Path:
        path = Path(self.scan_directory)
        return path if path.is_absolute() else Path(project_root) / path


_FIELD_TYPES = {
    "scan_directory": str,
    "file_patterns": list,
    "scenario_language": str,
    "parameter_exclusions": list,
    "strong_match_threshold": (int, float),
    "suggestion_threshold": (int, float),
    "step_suggestion_threshold": (int, float),
    "max_suggestions": int,
    "related_max_files": int,
    "scan_yield_every": int,
    "related_yield_every": int,
    "refresh_debounce": (int, float),
    "steps_file": (str, type(None)),
    "check_related_parents": bool,
}


def config_from_dict(data: dict, source: str = "<inline>") -> EngineConfig:
    """Build an EngineConfig from a mapping.

    Raises:
        ConfigError: If a known key has a value of the wrong type.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(data).__name__} in {source}")

    known = {f.name for f in fields(EngineConfig)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.debug("Ignoring unknown config key %r in %s", key, source)
            continue
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; only accept it where a bool is expected
        if isinstance(value, bool) and expected is not bool:
            raise ConfigError(f"Config key '{key}' has invalid type bool in {source}")
        if not isinstance(value, expected):
            raise ConfigError(f"Config key '{key}' has invalid type {type(value).__name__} in {source}")
        if expected is list and not all(isinstance(item, str) for item in value):
            raise ConfigError(f"Config key '{key}' must be a list of strings in {source}")
        values[key] = value

    return EngineConfig(**values)


def load_config(path: Optional[Union[str, Path]] = None, project_root: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Load configuration from YAML.

    Args:
        path: Explicit config file. When omitted, ``scenario-engine.yaml``
            under project_root is used if it exists.
        project_root: Directory searched for the default config file.

    Returns:
        EngineConfig (defaults when no file is found).

    Raises:
        ConfigError: If the file is malformed or has invalid values.
    """
    if path is None:
        candidate = Path(project_root or ".") / CONFIG_FILE_NAME
        if not candidate.exists():
            return EngineConfig()
        path = candidate

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return EngineConfig()

    config = config_from_dict(data, source=str(path))
    logger.debug("Loaded config from %s", path)
    return config
