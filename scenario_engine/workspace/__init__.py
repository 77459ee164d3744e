"""Document surface and session state for scenario-engine."""

from .documents import (
    Document,
    DocumentStore,
    FileSystemDocumentStore,
    InMemoryDocumentStore,
    Position,
    Range,
    TextEdit,
)
from .session import SessionState

__all__ = [
    "Document",
    "DocumentStore",
    "FileSystemDocumentStore",
    "InMemoryDocumentStore",
    "Position",
    "Range",
    "SessionState",
    "TextEdit",
]
