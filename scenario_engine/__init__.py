"""scenario-engine - index, validate and repair YAML test scenario documents."""

__version__ = "0.1.0"

from .config import EngineConfig, load_config
from .diagnostics import Diagnostic, DiagnosticsEngine, Severity, ValidationOptions, quick_fixes
from .errors import ConfigError, DocumentNotFoundError, SafetyRollbackError, ScenarioEngineError
from .index import CallGraph, ScenarioIndex
from .runner import BatchResult, RepairExecutor
from .workspace import Document, FileSystemDocumentStore, InMemoryDocumentStore, SessionState

__all__ = [
    "BatchResult",
    "CallGraph",
    "ConfigError",
    "Diagnostic",
    "DiagnosticsEngine",
    "Document",
    "DocumentNotFoundError",
    "EngineConfig",
    "FileSystemDocumentStore",
    "InMemoryDocumentStore",
    "RepairExecutor",
    "SafetyRollbackError",
    "ScenarioEngineError",
    "ScenarioIndex",
    "SessionState",
    "Severity",
    "ValidationOptions",
    "load_config",
    "quick_fixes",
    "__version__",
]
