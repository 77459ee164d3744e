"""Per-document session state.

One service holds everything the engine remembers about an open document
between edits: parameter values the user typed (so they survive a body
edit that temporarily drops a parameter), in-progress markers for
automatic fix passes, and the last saved text.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from ..scenario.schema import ParameterData

logger = logging.getLogger(__name__)


class SessionState:
    """Session-scoped caches keyed by document uri."""

    def __init__(self):
        self._overrides: dict[str, dict[str, ParameterData]] = {}
        self._processing: set[str] = set()
        self._saved: dict[str, str] = {}

    # Parameter overrides

    def parameter_overrides(self, uri: str) -> dict[str, ParameterData]:
        """Copy of the cached parameter data for a document."""
        return {
            name: ParameterData(data.value, data.type, data.outgoing)
            for name, data in self._overrides.get(uri, {}).items()
        }

    def merge_parameter_data(self, uri: str, data: dict[str, ParameterData]) -> dict[str, ParameterData]:
        """Merge document data into the cache; incoming entries win.

        Returns:
            Copy of the merged cache for the document
        """
        cached = self._overrides.setdefault(uri, {})
        for name, value in data.items():
            cached[name] = ParameterData(value.value, value.type, value.outgoing)
        return self.parameter_overrides(uri)

    def remember_parameter(self, uri: str, name: str, data: ParameterData) -> None:
        self._overrides.setdefault(uri, {})[name] = ParameterData(data.value, data.type, data.outgoing)

    def clear_parameter_overrides(self, uri: str) -> None:
        self._overrides.pop(uri, None)

    # In-progress markers

    def begin(self, uri: str) -> bool:
        """Mark a document as being processed; False if it already is."""
        if uri in self._processing:
            return False
        self._processing.add(uri)
        return True

    def end(self, uri: str) -> None:
        self._processing.discard(uri)

    def is_processing(self, uri: str) -> bool:
        return uri in self._processing

    @contextmanager
    def processing(self, uri: str) -> Iterator[bool]:
        """Context manager around begin/end.

        Yields False (and leaves the marker alone) when another pass
        already holds the document.
        """
        acquired = self.begin(uri)
        try:
            yield acquired
        finally:
            if acquired:
                self.end(uri)

    # Saved snapshots

    def record_saved(self, uri: str, text: str) -> None:
        self._saved[uri] = text

    def last_saved(self, uri: str) -> Optional[str]:
        return self._saved.get(uri)

    def close(self, uri: str) -> None:
        """Forget everything about a document."""
        self._overrides.pop(uri, None)
        self._processing.discard(uri)
        self._saved.pop(uri, None)
        logger.debug("Session state evicted for %s", uri)
