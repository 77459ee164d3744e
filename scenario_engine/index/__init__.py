"""Index module - scenario records and the call graph."""

from .call_graph import CallGraph, CallGraphCache
from .scenario_index import IndexState, ScenarioIndex

__all__ = [
    "CallGraph",
    "CallGraphCache",
    "IndexState",
    "ScenarioIndex",
]
