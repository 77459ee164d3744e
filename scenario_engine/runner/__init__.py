"""Runner module - Repair pass orchestration."""

from .executor import RepairConfig, RepairExecutor, RepairResult
from .result_collector import BatchResult, RepairFailure

__all__ = [
    "RepairConfig",
    "RepairExecutor",
    "RepairResult",
    "BatchResult",
    "RepairFailure",
]
