"""Scenario index: name -> ScenarioRecord for every scenario in the workspace.

The index is rebuilt from disk by a full scan and kept current by
incremental upserts as documents change. File events that could change
the set of scenario files mark it dirty; a debounced re-scan follows and
``ensure_fresh()`` forces one before callers that need exact data.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ..config import EngineConfig
from ..discovery.file_scanner import is_tracked_path
from ..discovery.refresh_scheduler import CancellationToken, RefreshScheduler
from ..scenario.parser import build_record
from ..scenario.schema import DocumentRef, ScenarioRecord
from ..workspace.documents import Document, DocumentStore, FileSystemDocumentStore

logger = logging.getLogger(__name__)


class IndexState(str, Enum):
    """Freshness of the index."""
    EMPTY = "empty"
    POPULATED = "populated"
    DIRTY = "dirty"


class ScenarioIndex:
    """Name-keyed store of scenario records."""

    def __init__(
        self,
        scan_root: Optional[Union[str, Path]] = None,
        config: Optional[EngineConfig] = None,
        store: Optional[DocumentStore] = None,
    ):
        """Initialize scenario index.

        Args:
            scan_root: Directory scanned for scenario files. Relative record
                folders are computed against it.
            config: Engine configuration. Default: EngineConfig().
            store: Document surface used to list and read files.
                Default: FileSystemDocumentStore().
        """
        self.config = config or EngineConfig()
        self.scan_root = Path(scan_root) if scan_root is not None else None
        self.store = store or FileSystemDocumentStore()
        self.state = IndexState.EMPTY
        self.generation = 0
        self._dirty_marks = 0
        self._records: dict[str, ScenarioRecord] = {}
        self._listeners: list[Callable[[int], None]] = []
        self.scheduler = RefreshScheduler(self.refresh, debounce=self.config.refresh_debounce)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: str) -> bool:
        return name in self._records

    # Queries

    def lookup(self, name: str) -> Optional[ScenarioRecord]:
        return self._records.get(name)

    def names(self) -> list[str]:
        return list(self._records)

    def records(self) -> list[ScenarioRecord]:
        return list(self._records.values())

    def snapshot(self) -> dict[str, ScenarioRecord]:
        """Shallow copy of the name -> record map."""
        return dict(self._records)

    def record_for_uri(self, uri: str) -> Optional[ScenarioRecord]:
        for record in self._records.values():
            if record.uri == uri:
                return record
        return None

    # Change notification

    def on_change(self, callback: Callable[[int], None]) -> Callable[[], None]:
        """Register a listener called with the new generation.

        Returns:
            Function that unregisters the listener
        """
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def _bump(self) -> None:
        self.generation += 1
        for callback in list(self._listeners):
            try:
                callback(self.generation)
            except Exception:
                logger.exception("Index change listener failed")

    # Mutation

    def _source_for(self, uri: Union[str, Path]) -> DocumentRef:
        return DocumentRef.for_path(uri, self.scan_root)

    def _put(self, record: ScenarioRecord) -> bool:
        changed = False
        # A renamed scenario leaves a stale entry owned by the same file
        stale = [
            name for name, existing in self._records.items()
            if existing.uri == record.uri and name != record.name
        ]
        for name in stale:
            del self._records[name]
            changed = True
        if self._records.get(record.name) != record:
            self._records[record.name] = record
            changed = True
        return changed

    def upsert(self, document: Document) -> bool:
        """Re-index one document.

        Args:
            document: Current document content.

        Returns:
            True if the index changed; False when the record is identical.
        """
        record = build_record(document.text, self._source_for(document.uri))
        if record is None:
            return self.remove(document.uri)

        changed = self._put(record)
        if changed:
            if self.state == IndexState.EMPTY:
                self.state = IndexState.POPULATED
            self._bump()
            logger.debug("Index updated for %s (%s)", record.name, document.uri)
        return changed

    def remove(self, uri: Union[str, Path]) -> bool:
        uri = str(uri)
        names = [name for name, record in self._records.items() if record.uri == uri]
        for name in names:
            del self._records[name]
        if names:
            self._bump()
        return bool(names)

    async def rebuild_all(
        self,
        paths: Iterable[Union[str, Path]],
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        """Clear and repopulate the index from the given files.

        Per-file failures are logged and skipped. On cancellation the files
        read so far are kept and the index stays dirty. It also stays dirty
        when ``mark_dirty`` runs while the scan is in progress.

        Returns:
            Number of records in the rebuilt index.
        """
        return await self._rebuild(paths, cancel_token, self._dirty_marks)

    async def _rebuild(self, paths, cancel_token, marks: int) -> int:
        records: dict[str, ScenarioRecord] = {}
        cancelled = False
        yield_every = max(1, self.config.scan_yield_every)

        for count, path in enumerate(paths, start=1):
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info("Index rebuild cancelled after %d files", count - 1)
                cancelled = True
                break
            try:
                text = await self.store.read(path)
                record = build_record(text, self._source_for(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping %s: %s", path, e)
                continue
            if record is not None:
                if record.name in records:
                    logger.debug("Duplicate scenario name %r in %s", record.name, path)
                records[record.name] = record
            if count % yield_every == 0:
                await asyncio.sleep(0)

        self._records = records
        # A file event during the scan may postdate what was read
        stale = cancelled or self._dirty_marks != marks
        self.state = IndexState.DIRTY if stale else IndexState.POPULATED
        self._bump()
        logger.info("Index rebuilt: %d scenarios", len(records))
        return len(records)

    async def refresh(self, cancel_token: Optional[CancellationToken] = None) -> int:
        """Re-scan the configured scan root."""
        if self.scan_root is None:
            raise ValueError("ScenarioIndex has no scan root to refresh from")
        marks = self._dirty_marks
        paths = await self.store.list_scenario_files(self.scan_root, self.config.file_patterns)
        return await self._rebuild(paths, cancel_token, marks)

    def mark_dirty(self, reason: str = "") -> None:
        """Flag the index stale and schedule a debounced re-scan."""
        logger.debug("Index marked dirty: %s", reason or "unspecified")
        self._dirty_marks += 1
        self.state = IndexState.DIRTY
        if self.scan_root is not None:
            self.scheduler.schedule()

    async def ensure_fresh(self) -> None:
        """Re-scan now if the index is empty or dirty."""
        if self.state == IndexState.POPULATED:
            return
        if self.scan_root is None:
            return
        await self.scheduler.flush()

    def handle_file_event(self, kind: str, path: Union[str, Path]) -> bool:
        """React to a create/delete/rename event.

        Returns:
            True if the event concerned a tracked path and marked the index dirty
        """
        if self.scan_root is None:
            return False
        if not is_tracked_path(path, self.scan_root, self.config.file_patterns):
            return False
        self.mark_dirty(f"{kind}: {path}")
        return True
