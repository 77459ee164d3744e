"""Reverse call graph over the scenario index."""

from collections import deque
from typing import Iterable, Optional

from ..scenario.schema import DocumentRef, ScenarioRecord


class CallGraph:
    """Caller sets and source lookups derived from index records."""

    def __init__(self):
        self.callers: dict[str, set[str]] = {}
        self.callees: dict[str, list[str]] = {}
        self.sources: dict[str, DocumentRef] = {}
        self.names_by_uri: dict[str, str] = {}

    @classmethod
    def from_records(cls, records: Iterable[ScenarioRecord]) -> "CallGraph":
        graph = cls()
        for record in records:
            graph.sources[record.name] = record.source
            graph.names_by_uri[record.uri] = record.name
            graph.callees[record.name] = list(record.nested_calls)
            for callee in record.nested_calls:
                graph.callers.setdefault(callee, set()).add(record.name)
        return graph

    def callers_of(self, name: str) -> set[str]:
        return set(self.callers.get(name, ()))

    def callees_of(self, name: str) -> list[str]:
        return list(self.callees.get(name, ()))

    def source_of(self, name: str) -> Optional[DocumentRef]:
        return self.sources.get(name)

    def name_for_uri(self, uri: str) -> Optional[str]:
        return self.names_by_uri.get(str(uri))

    def related_documents(
        self,
        source_name: str,
        max_count: int,
        exclude_uri: Optional[str] = None,
    ) -> list[DocumentRef]:
        """Documents whose diagnostics may change when source_name changes.

        Walks caller sets breadth-first, visiting each name once, and stops
        after max_count distinct documents. The result is sorted by path.
        """
        found: dict[str, DocumentRef] = {}
        visited = {source_name}
        queue = deque([source_name])

        while queue and len(found) < max_count:
            current = queue.popleft()
            for caller in sorted(self.callers.get(current, ())):
                if caller in visited:
                    continue
                visited.add(caller)
                queue.append(caller)
                source = self.sources.get(caller)
                if source is None or source.uri == exclude_uri or source.uri in found:
                    continue
                found[source.uri] = source
                if len(found) >= max_count:
                    break

        return sorted(found.values(), key=lambda ref: ref.uri.lower())


class CallGraphCache:
    """Rebuilds the call graph only when the index generation changes."""

    def __init__(self):
        self._graph: Optional[CallGraph] = None
        self._generation: Optional[int] = None
        self.builds = 0

    def get(self, index) -> CallGraph:
        if self._graph is None or self._generation != index.generation:
            self._graph = CallGraph.from_records(index.records())
            self._generation = index.generation
            self.builds += 1
        return self._graph

    def invalidate(self) -> None:
        self._graph = None
        self._generation = None
