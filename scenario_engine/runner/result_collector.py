"""Result collector for repair batches.

Aggregates per-document repair outcomes into one batch result.
"""

from dataclasses import dataclass, field


@dataclass
class RepairFailure:
    """A document whose repair pass was rolled back or failed."""
    path: str
    reason: str


@dataclass
class BatchResult:
    """Aggregated outcome of a repair pass over many documents."""
    changed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[RepairFailure] = field(default_factory=list)
    duration_ms: int = 0

    def add_changed(self, path: str) -> None:
        self.changed.append(path)

    def add_unchanged(self, path: str) -> None:
        self.unchanged.append(path)

    def add_skipped(self, path: str) -> None:
        """Record a document another pass was already processing."""
        self.skipped.append(path)

    def add_failure(self, path: str, reason: str) -> None:
        """Add a failure for a document."""
        self.failures.append(RepairFailure(path=path, reason=reason))

    @property
    def has_errors(self) -> bool:
        return len(self.failures) > 0

    @property
    def total_count(self) -> int:
        return len(self.changed) + len(self.unchanged) + len(self.skipped) + len(self.failures)
