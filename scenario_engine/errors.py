"""Exception types for scenario-engine.

Parsing never raises: a missing section or field is reported as absence.
Exceptions are reserved for I/O, configuration and safety rollbacks.
"""


class ScenarioEngineError(Exception):
    """Base class for scenario-engine errors."""


class ConfigError(ScenarioEngineError, ValueError):
    """Invalid configuration file or value."""


class DocumentNotFoundError(ScenarioEngineError, FileNotFoundError):
    """A scenario document could not be found by the document store."""


class SafetyRollbackError(ScenarioEngineError):
    """An automatic edit would have removed a top-level section."""

    def __init__(self, path: str, missing_sections: list[str]):
        self.path = path
        self.missing_sections = missing_sections
        super().__init__(
            f"Automatic fix would remove section(s) {', '.join(missing_sections)} in {path}; changes reverted."
        )
