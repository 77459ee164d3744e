"""Discovery module - scenario file scanning and refresh scheduling."""

from .file_scanner import find_scenario_files, is_tracked_path, matches_patterns
from .refresh_scheduler import DEFAULT_DEBOUNCE, CancellationToken, RefreshScheduler

__all__ = [
    "CancellationToken",
    "DEFAULT_DEBOUNCE",
    "RefreshScheduler",
    "find_scenario_files",
    "is_tracked_path",
    "matches_patterns",
]
