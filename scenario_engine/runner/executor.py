"""Repair executor - orchestrates the automatic fix pass.

Runs the repair steps over one document in a fixed order:
1. Replace leading tabs
2. Align Gherkin tables
3. Align call parameter assignments
4. Re-index the document
5. Regenerate the nested-call section
6. Regenerate the parameter section
7. Write the result

The set of top-level sections is compared before and after; if any
section disappeared the original text is kept and the pass is reported as
a failure.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ..config import EngineConfig
from ..discovery.refresh_scheduler import CancellationToken
from ..errors import SafetyRollbackError, ScenarioEngineError
from ..regeneration.formatting import align_call_parameters_in_text, align_tables_in_text, replace_leading_tabs
from ..regeneration.nested import regenerate_nested_calls
from ..regeneration.parameters import regenerate_parameters
from ..scenario.sections import present_sections
from ..workspace.documents import Document, DocumentStore
from ..workspace.session import SessionState
from .result_collector import BatchResult

logger = logging.getLogger(__name__)

# (text, document uri) -> new text
RepairStep = Callable[[str, str], str]


@dataclass
class RepairConfig:
    """Which repair steps run."""
    normalize_tabs: bool = True
    align_tables: bool = True
    align_call_parameters: bool = True
    regenerate_nested: bool = True
    regenerate_parameters: bool = True
    write_changes: bool = True


@dataclass
class RepairResult:
    """Outcome of repairing one document."""
    path: str
    changed: bool = False
    skipped: bool = False
    text: str = ""
    steps_applied: list[str] = field(default_factory=list)
    duration_ms: int = 0
    error: Optional[str] = None


class RepairExecutor:
    """Applies the repair steps to scenario documents.

    Steps are (name, callable) pairs and can be replaced, which is how
    callers add project-specific rewrites.
    """

    def __init__(
        self,
        index,
        store: Optional[DocumentStore] = None,
        config: Optional[EngineConfig] = None,
        repair_config: Optional[RepairConfig] = None,
        session: Optional[SessionState] = None,
        steps: Optional[list[tuple[str, RepairStep]]] = None,
        uid_factory: Optional[Callable[[], str]] = None,
    ):
        """Initialize repair executor.

        Args:
            index: ScenarioIndex kept up to date as documents are repaired.
            store: Document surface. Default: the index's store.
            config: Engine configuration. Default: the index's config.
            repair_config: Step switches.
            session: Session state for parameter data and in-progress markers.
            steps: Replacement step list (None = default steps).
            uid_factory: UID generator for new nested-call entries.
        """
        self.index = index
        self.store = store or index.store
        self.config = config or index.config
        self.repair_config = repair_config or RepairConfig()
        self.session = session or SessionState()
        self.uid_factory = uid_factory
        self.steps = steps if steps is not None else self.default_steps()

    def default_steps(self) -> list[tuple[str, RepairStep]]:
        rc = self.repair_config
        steps: list[tuple[str, RepairStep]] = []
        if rc.normalize_tabs:
            steps.append(("normalize_tabs", lambda text, uri: replace_leading_tabs(text)))
        if rc.align_tables:
            steps.append(("align_tables", lambda text, uri: align_tables_in_text(text)))
        if rc.align_call_parameters:
            steps.append(("align_call_parameters", lambda text, uri: align_call_parameters_in_text(text)))
        steps.append(("index", self._index_step))
        if rc.regenerate_nested:
            steps.append(("regenerate_nested", self._nested_step))
        if rc.regenerate_parameters:
            steps.append(("regenerate_parameters", self._parameters_step))
        return steps

    def _index_step(self, text: str, uri: str) -> str:
        self.index.upsert(Document(uri, text))
        return text

    def _nested_step(self, text: str, uri: str) -> str:
        # Without an index every call would look unknown and be dropped
        if not len(self.index):
            return text
        return regenerate_nested_calls(text, self.index, self.uid_factory).text

    def _parameters_step(self, text: str, uri: str) -> str:
        return regenerate_parameters(text, self.session, uri, self.config.parameter_exclusions).text

    def repair_text(self, text: str, uri: str) -> RepairResult:
        """Run every step over a text without touching the store.

        Returns:
            RepairResult holding the new text.

        Raises:
            SafetyRollbackError: If a step removed a top-level section.
        """
        result = RepairResult(path=uri, text=text)
        before = present_sections(text)

        current = text
        for name, step in self.steps:
            updated = step(current, uri)
            if updated != current:
                result.steps_applied.append(name)
                current = updated

        missing = sorted(before - present_sections(current))
        if missing:
            raise SafetyRollbackError(uri, missing)

        result.text = current
        result.changed = current != text
        return result

    async def repair(self, uri: Union[str, Path]) -> RepairResult:
        """Repair one document and write it back if it changed.

        Returns:
            RepairResult; failures are reported in ``error``, not raised.
        """
        uri = str(uri)
        start_time = time.time()
        result = RepairResult(path=uri)

        with self.session.processing(uri) as acquired:
            if not acquired:
                logger.debug("Skipping %s: a repair pass is already running", uri)
                result.skipped = True
                return result

            original = None
            overrides = self.session.parameter_overrides(uri)
            try:
                document = await self.store.open(uri)
                original = document.text
                result = self.repair_text(original, uri)

                if result.changed and self.repair_config.write_changes:
                    await self.store.write(uri, result.text)
                    self.session.record_saved(uri, result.text)
                    logger.info("Repaired %s (%s)", uri, ", ".join(result.steps_applied))

            except SafetyRollbackError as e:
                result = RepairResult(path=uri, text=original or "", error=str(e))
                logger.warning("%s", e)
                # The index step may have seen the rejected text
                self.index.upsert(Document(uri, original))
                # So may the parameter step
                self.session.clear_parameter_overrides(uri)
                if overrides:
                    self.session.merge_parameter_data(uri, overrides)

            except (OSError, UnicodeDecodeError) as e:
                result.error = f"Failed to read or write: {e}"
                logger.warning("Repair failed for %s: %s", uri, e)

            except ScenarioEngineError as e:
                result.error = str(e)
                logger.warning("Repair failed for %s: %s", uri, e)

            finally:
                result.duration_ms = int((time.time() - start_time) * 1000)

        return result

    async def run_batch(
        self,
        paths: Iterable[Union[str, Path]],
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchResult:
        """Repair many documents, collecting the outcomes.

        Args:
            paths: Documents to repair.
            cancel_token: Checked between documents.

        Returns:
            BatchResult with changed, unchanged, skipped and failed paths.
        """
        start_time = time.time()
        batch = BatchResult()
        yield_every = max(1, self.config.scan_yield_every)

        for count, path in enumerate(paths, start=1):
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info("Repair batch cancelled after %d files", count - 1)
                break

            try:
                result = await self.repair(path)
            except Exception as e:
                logger.exception("Unexpected error repairing %s", path)
                batch.add_failure(str(path), f"Unexpected error: {type(e).__name__}: {e}")
                continue

            if result.error:
                batch.add_failure(result.path, result.error)
            elif result.skipped:
                batch.add_skipped(result.path)
            elif result.changed:
                batch.add_changed(result.path)
            else:
                batch.add_unchanged(result.path)

            if count % yield_every == 0:
                await asyncio.sleep(0)

        batch.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Repair batch: %d changed, %d unchanged, %d failed",
            len(batch.changed), len(batch.unchanged), len(batch.failures),
        )
        return batch
