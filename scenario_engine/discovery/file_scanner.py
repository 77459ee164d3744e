"""Scenario file discovery on disk."""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {"node_modules", ".git", "__pycache__"}


def matches_patterns(path: Union[str, Path], patterns: Iterable[str]) -> bool:
    """Check a file name against suffix or glob patterns.

    A pattern without glob characters matches as a name suffix, so
    ``scen.yaml`` matches ``login.scen.yaml`` and ``scen.yaml`` alike.
    """
    name = Path(path).name
    for pattern in patterns:
        if any(ch in pattern for ch in "*?["):
            if fnmatch.fnmatch(name, pattern):
                return True
        elif name == pattern or name.endswith(pattern):
            return True
    return False


def is_within(path: Union[str, Path], root: Union[str, Path]) -> bool:
    try:
        Path(path).resolve().relative_to(Path(root).resolve())
        return True
    except ValueError:
        return False


def is_tracked_path(path: Union[str, Path], root: Union[str, Path], patterns: Iterable[str]) -> bool:
    """Whether a path can hold scenario files the index cares about.

    Directories (paths without a suffix) inside the root count as tracked
    so folder renames and deletes trigger a re-scan.
    """
    path = Path(path)
    if not is_within(path, root):
        return False
    if not path.suffix:
        return True
    return matches_patterns(path, patterns)


def find_scenario_files(root: Union[str, Path], patterns: Iterable[str]) -> list[Path]:
    """List scenario files under a directory, sorted by path.

    Args:
        root: Directory to scan.
        patterns: File name patterns (see matches_patterns).

    Returns:
        Sorted list of matching files; empty if root does not exist.
    """
    root = Path(root)
    patterns = list(patterns)
    if not root.is_dir():
        logger.warning("Scan directory not found: %s", root)
        return []

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in SKIPPED_DIRECTORIES]
        for filename in filenames:
            if matches_patterns(filename, patterns):
                found.append(Path(dirpath) / filename)

    found.sort(key=lambda p: str(p).lower())
    logger.debug("Found %d scenario files under %s", len(found), root)
    return found
