"""Diagnostics engine for scenario documents.

Validates one document against the scenario index and step catalog:
block and quote balance, scenario call resolution and parameters,
unknown steps, declaration completeness and empty descriptions. Duplicate
scenario codes are computed project-wide from the index.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from ..config import EngineConfig
from ..discovery.refresh_scheduler import CancellationToken
from ..index.call_graph import CallGraphCache
from ..scenario.body import parse_call_blocks, used_parameters_from_body
from ..scenario.keywords import GHERKIN_STEP_PATTERN
from ..scenario.metadata import parse_description
from ..scenario.parser import parse_declared_parameters, parse_nested_call_names, parse_scenario_name
from ..scenario.schema import ScenarioCallBlock
from ..scenario.sections import SectionKey, find_section, script_body_lines, section_lines
from ..workspace.documents import Document, DocumentStore, FileSystemDocumentStore, Range
from .fuzzy import find_closest_strings, string_similarity
from .steps import StepCatalog, TemplateStepCatalog, apply_suggestion_values, looks_like_missing_quotes
from .types import Diagnostic, DiagnosticCode, Messages, Severity, list_message, suggestion_suffix

logger = logging.getLogger(__name__)

UNESCAPED_QUOTE = re.compile(r'(?<!\\)"')
QUOTED_VALUE = re.compile(r"""^(?:"[\s\S]*"|'[\s\S]*')$""")
BRACKET_VALUE = re.compile(r"^\[[A-Za-zА-Яа-яЁё0-9_-]+\]$")
LIKELY_STEP_PREFIX = re.compile(r"^(Я|I|When|Then|Given|Если|Когда|Тогда|Но)\b", re.IGNORECASE)
STEP_LIKE_WORDS = re.compile(
    r"^(I|Я|in|the|a|an|on|at|with|without|from|to|if|when|then|given|но|тогда|когда|если)\b",
    re.IGNORECASE,
)
STEP_LIKE_ARGUMENTS = re.compile(r"""(\[[^\]]+\]|"[^"]*"|'[^']*')""")
WORD_WITH_NUMBER = re.compile(r"^[A-Za-zА-Яа-яЁё][A-Za-zА-Яа-яЁё0-9_-]*\s+\d+(?:[.,]\d+)?$")
BLOCK_KEYWORDS = (
    ("EndIf", re.compile(r"^EndIf\b", re.IGNORECASE)),
    ("EndDo", re.compile(r"^EndDo\b", re.IGNORECASE)),
    ("If", re.compile(r"^If\b", re.IGNORECASE)),
    ("Do", re.compile(r"^Do\b", re.IGNORECASE)),
)
IGNORED_CODE_PATTERN = re.compile(r"^Code_Placeholder$", re.IGNORECASE)


@dataclass(frozen=True)
class ValidationOptions:
    """Which checks and suggestions a validation pass includes."""
    include_suggestions: bool
    include_step_checks: bool
    include_step_suggestions: Optional[bool] = None
    include_scenario_suggestions: Optional[bool] = None

    @property
    def step_suggestions(self) -> bool:
        if self.include_step_suggestions is None:
            return self.include_suggestions
        return self.include_step_suggestions

    @property
    def scenario_suggestions(self) -> bool:
        if self.include_scenario_suggestions is None:
            return self.include_suggestions
        return self.include_scenario_suggestions


FULL = ValidationOptions(include_suggestions=True, include_step_checks=True)
CHANGE = ValidationOptions(include_suggestions=True, include_step_checks=True)
GLOBAL = ValidationOptions(include_suggestions=False, include_step_checks=True)
SAVE = ValidationOptions(
    include_suggestions=False,
    include_step_checks=True,
    include_step_suggestions=True,
    include_scenario_suggestions=True,
)
RELATED = ValidationOptions(include_suggestions=False, include_step_checks=False)


def block_keyword(line: str) -> Optional[str]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    for name, pattern in BLOCK_KEYWORDS:
        if pattern.match(stripped):
            return name
    return None


def looks_like_step(name: str) -> bool:
    """Heuristic: does call-shaped text read like a natural-language step?"""
    text = name.strip()
    if not text:
        return False
    return bool(
        STEP_LIKE_ARGUMENTS.search(text)
        or STEP_LIKE_WORDS.match(text)
        or WORD_WITH_NUMBER.match(text)
    )


def is_valid_parameter_value(value: str) -> bool:
    value = value.strip()
    return (len(value) >= 2 and bool(QUOTED_VALUE.match(value))) or bool(BRACKET_VALUE.match(value))


class DiagnosticsEngine:
    """Produces diagnostics for scenario documents."""

    def __init__(
        self,
        index,
        steps: Optional[StepCatalog] = None,
        config: Optional[EngineConfig] = None,
        store: Optional[DocumentStore] = None,
    ):
        """Initialize diagnostics engine.

        Args:
            index: ScenarioIndex consulted for call resolution.
            steps: Step catalog. Default: an empty catalog, which disables
                unknown-step reporting.
            config: Engine configuration. Default: the index's config.
            store: Document surface for related and workspace scans.
        """
        self.index = index
        self.steps = steps or TemplateStepCatalog([])
        self.config = config or getattr(index, "config", None) or EngineConfig()
        self.store = store or getattr(index, "store", None) or FileSystemDocumentStore()
        self.graph_cache = CallGraphCache()
        self._duplicates: dict[str, list[Diagnostic]] = {}
        self._duplicates_generation: Optional[int] = None

    def _diagnostic(self, document: Document, line: int, message: str,
                    severity: Severity, code: DiagnosticCode) -> Diagnostic:
        return Diagnostic(document.line_range(line), message, severity, code)

    # Passes

    def _check_balance(self, document: Document, body: list[tuple[int, str]]) -> list[Diagnostic]:
        diagnostics = []
        if_stack: list[int] = []
        do_stack: list[int] = []

        for number, line in body:
            keyword = block_keyword(line)
            if keyword == "EndIf":
                if if_stack:
                    if_stack.pop()
                else:
                    diagnostics.append(self._diagnostic(
                        document, number, Messages.EXTRA_END_IF, Severity.ERROR, DiagnosticCode.UNCLOSED_IF))
            elif keyword == "If":
                if_stack.append(number)
            elif keyword == "EndDo":
                if do_stack:
                    do_stack.pop()
                else:
                    diagnostics.append(self._diagnostic(
                        document, number, Messages.EXTRA_END_DO, Severity.ERROR, DiagnosticCode.UNCLOSED_DO))
            elif keyword == "Do":
                do_stack.append(number)

            if len(UNESCAPED_QUOTE.findall(line)) % 2:
                diagnostics.append(self._diagnostic(
                    document, number, Messages.UNMATCHED_QUOTE, Severity.ERROR, DiagnosticCode.UNCLOSED_QUOTE))

        for number in if_stack:
            diagnostics.append(self._diagnostic(
                document, number, Messages.UNMATCHED_IF, Severity.ERROR, DiagnosticCode.UNCLOSED_IF))
        for number in do_stack:
            diagnostics.append(self._diagnostic(
                document, number, Messages.UNMATCHED_DO, Severity.ERROR, DiagnosticCode.UNCLOSED_DO))
        return diagnostics

    def _step_diagnostic(self, document: Document, line: int, text: str, hints: list[str]) -> Diagnostic:
        missing_quotes = looks_like_missing_quotes(text, hints)
        suggestions = list(dict.fromkeys(apply_suggestion_values(text, hint) for hint in hints))
        suffix = suggestion_suffix(suggestions)
        if missing_quotes:
            return self._diagnostic(document, line, Messages.MISSING_QUOTES + suffix,
                                    Severity.WARNING, DiagnosticCode.UNKNOWN_STEP)
        return self._diagnostic(document, line, Messages.UNKNOWN_STEP + suffix,
                                Severity.ERROR, DiagnosticCode.UNKNOWN_STEP)

    def _check_quoting(self, document: Document, block: ScenarioCallBlock) -> list[Diagnostic]:
        return [
            self._diagnostic(document, param.line, Messages.VALUE_NOT_QUOTED,
                             Severity.WARNING, DiagnosticCode.MISSING_QUOTES)
            for param in block.parameters
            if param.value.strip() and not is_valid_parameter_value(param.value)
        ]

    def _check_calls(self, document, blocks, snapshot, options, step_checks):
        """Classify call-shaped lines and validate real scenario calls.

        Returns:
            (diagnostics, validated call blocks, lines already reported as steps)
        """
        diagnostics: list[Diagnostic] = []
        validated: list[ScenarioCallBlock] = []
        step_lines: set[int] = set()
        has_index = bool(snapshot)
        names = list(snapshot)
        max_suggestions = self.config.max_suggestions

        for block in blocks:
            record = snapshot.get(block.name)
            line_text = document.line_at(block.line).strip()
            suggestions = []
            if record is None and has_index and options.scenario_suggestions:
                suggestions = find_closest_strings(
                    block.name, names, max_suggestions, self.config.suggestion_threshold)
            strong_match = bool(suggestions) and (
                string_similarity(block.name, suggestions[0]) >= self.config.strong_match_threshold)

            # Step-like "And ..." lines are steps, not unknown scenario calls
            if record is None and not block.parameters and not strong_match:
                step_like = looks_like_step(block.name)
                if (step_checks or step_like) and self.steps.is_known_step(line_text):
                    continue
                if step_checks and self.steps.suggest(line_text, 1):
                    continue
                if step_like:
                    if self.steps.available:
                        hints = self.steps.suggest(line_text, max_suggestions)
                        diagnostics.append(self._step_diagnostic(document, block.line, line_text, hints))
                        step_lines.add(block.line)
                    continue

            is_call = (
                record is not None
                or bool(block.parameters)
                or not LIKELY_STEP_PREFIX.match(block.name)
                or strong_match
            )
            if not is_call:
                continue
            validated.append(block)

            if record is None:
                if not has_index:
                    diagnostics.extend(self._check_quoting(document, block))
                    continue
                diagnostics.append(self._diagnostic(
                    document, block.line, Messages.UNKNOWN_SCENARIO + suggestion_suffix(suggestions),
                    Severity.ERROR, DiagnosticCode.UNKNOWN_SCENARIO))
                continue

            expected = [name.strip() for name in record.parameters if name.strip()]
            for param in block.parameters:
                if param.name not in expected:
                    diagnostics.append(self._diagnostic(
                        document, param.line, Messages.EXTRA_PARAMETER.format(param.name),
                        Severity.ERROR, DiagnosticCode.EXTRA_SCENARIO_PARAMETER))
            diagnostics.extend(self._check_quoting(document, block))

            actual = set(block.parameter_names)
            missing = [name for name in dict.fromkeys(expected) if name not in actual]
            if missing:
                diagnostics.append(self._diagnostic(
                    document, block.line, list_message(Messages.MISSING_PARAMETERS, missing),
                    Severity.WARNING, DiagnosticCode.MISSING_SCENARIO_PARAMETER))

        return diagnostics, validated, step_lines

    def _check_steps(self, document, body, call_lines, options) -> list[Diagnostic]:
        diagnostics = []
        for number, line in body:
            if number in call_lines:
                continue
            stripped = line.strip()
            if not stripped or stripped.startswith(("#", "|", '"""')):
                continue
            if not GHERKIN_STEP_PATTERN.match(stripped):
                continue
            if self.steps.is_known_step(stripped):
                continue
            hints = self.steps.suggest(stripped, self.config.max_suggestions) if options.step_suggestions else []
            diagnostics.append(self._step_diagnostic(document, number, stripped, hints))
        return diagnostics

    def _check_completeness(self, document, header_line, validated, has_index) -> list[Diagnostic]:
        diagnostics = []
        text = document.text

        if has_index:
            declared = set(parse_nested_call_names(text))
            missing_nested = [name for name in dict.fromkeys(b.name for b in validated) if name not in declared]
            if missing_nested:
                message = f"{Messages.SECTION_INCOMPLETE} {Messages.MISSING_NESTED_ENTRIES.format(', '.join(missing_nested))}"
                diagnostics.append(self._diagnostic(
                    document, header_line, message, Severity.WARNING, DiagnosticCode.INCOMPLETE_BLOCK))

        defined = set(parse_declared_parameters(text))
        used = used_parameters_from_body(text, self.config.parameter_exclusions)
        missing_params = [name for name in used if name not in defined]
        if missing_params:
            message = f"{Messages.SECTION_INCOMPLETE} {Messages.MISSING_PARAMETER_ENTRIES.format(', '.join(missing_params))}"
            diagnostics.append(self._diagnostic(
                document, header_line, message, Severity.WARNING, DiagnosticCode.INCOMPLETE_BLOCK))
        return diagnostics

    def _check_description(self, document: Document) -> list[Diagnostic]:
        if parse_description(document.text) != "":
            return []
        for number, line in section_lines(document.text, SectionKey.EXTENDED_METADATA):
            if line.strip().startswith("Описание:"):
                return [self._diagnostic(document, number, Messages.DEFAULT_DESCRIPTION,
                                         Severity.WARNING, DiagnosticCode.DEFAULT_DESCRIPTION)]
        return []

    # Public API

    def validate(self, document: Document, options: ValidationOptions = FULL) -> list[Diagnostic]:
        """Validate one document.

        Args:
            document: Document to check.
            options: Which checks and suggestions to include.

        Returns:
            Diagnostics in pass order; empty for documents without a script body.
        """
        script = find_section(document.text, SectionKey.SCRIPT)
        if script is None:
            return []

        body = script_body_lines(document.text)
        snapshot = self.index.snapshot()
        step_checks = options.include_step_checks and self.steps.available

        diagnostics = self._check_balance(document, body)
        blocks = parse_call_blocks(body)
        call_diagnostics, validated, step_lines = self._check_calls(document, blocks, snapshot, options, step_checks)
        diagnostics.extend(call_diagnostics)

        if step_checks:
            call_lines = set(step_lines)
            for block in validated:
                call_lines.add(block.line)
                call_lines.update(param.line for param in block.parameters)
            diagnostics.extend(self._check_steps(document, body, call_lines, options))

        diagnostics.extend(self._check_completeness(document, script.header_line, validated, bool(snapshot)))
        diagnostics.extend(self._check_description(document))
        return diagnostics

    def duplicate_code_diagnostics(self) -> dict[str, list[Diagnostic]]:
        """Duplicate scenario code warnings by document uri.

        Recomputed only when the index generation changes.
        """
        if self._duplicates_generation == self.index.generation:
            return self._duplicates

        by_code: dict[str, list] = {}
        for record in self.index.records():
            code = (record.scenario_code or "").strip()
            if not code or IGNORED_CODE_PATTERN.match(code):
                continue
            by_code.setdefault(code, []).append(record)

        result: dict[str, list[Diagnostic]] = {}
        for code, records in by_code.items():
            if len(records) < 2:
                continue
            for record in records:
                others = sorted(
                    (other.name for other in records if other.uri != record.uri),
                    key=str.lower,
                )
                if not others:
                    continue
                span = record.code_span
                line = span.line if span else 0
                start = span.start if span else 0
                end = max(start + 1, span.end if span else 1)
                result.setdefault(record.uri, []).append(Diagnostic(
                    Range(line, start, line, end),
                    list_message(Messages.DUPLICATE_CODE.format(code), others),
                    Severity.WARNING,
                    DiagnosticCode.DUPLICATE_SCENARIO_CODE,
                ))

        self._duplicates = result
        self._duplicates_generation = self.index.generation
        return result

    def related_documents(self, document: Document) -> list:
        """Callers (transitively) of the scenario a document defines."""
        graph = self.graph_cache.get(self.index)
        name = parse_scenario_name(document.text) or graph.name_for_uri(document.uri)
        if not name:
            return []
        return graph.related_documents(name, self.config.related_max_files, exclude_uri=document.uri)

    async def validate_related(
        self,
        document: Document,
        options: ValidationOptions = RELATED,
    ) -> dict[str, list[Diagnostic]]:
        """Re-validate documents that call the given document's scenario."""
        results: dict[str, list[Diagnostic]] = {}
        if not self.config.check_related_parents:
            return results

        yield_every = max(1, self.config.related_yield_every)
        for count, ref in enumerate(self.related_documents(document), start=1):
            try:
                related = await self.store.open(ref.uri)
                results[ref.uri] = self.validate(related, options)
            except OSError as e:
                logger.warning("Failed to validate related scenario %s: %s", ref.uri, e)
            if count % yield_every == 0:
                await asyncio.sleep(0)
        return results

    async def scan_workspace(
        self,
        paths: Optional[Iterable[Union[str, Path]]] = None,
        options: ValidationOptions = GLOBAL,
        cancel_token: Optional[CancellationToken] = None,
    ) -> dict[str, list[Diagnostic]]:
        """Validate every scenario document.

        Args:
            paths: Documents to validate. Default: every document in the index.
            options: Validation options. Default: GLOBAL.
            cancel_token: Checked between files.

        Returns:
            Diagnostics by uri, duplicate-code warnings included.
        """
        if paths is None:
            await self.index.ensure_fresh()
            paths = [record.uri for record in self.index.records()]
        uris = sorted({str(p) for p in paths}, key=str.lower)

        duplicates = self.duplicate_code_diagnostics()
        results: dict[str, list[Diagnostic]] = {}
        yield_every = max(1, self.config.scan_yield_every)

        for count, uri in enumerate(uris, start=1):
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info("Workspace diagnostics scan cancelled after %d files", count - 1)
                break
            try:
                document = await self.store.open(uri)
                results[uri] = self.validate(document, options) + list(duplicates.get(uri, []))
            except OSError as e:
                logger.warning("Failed to validate %s: %s", uri, e)
            if count % yield_every == 0:
                await asyncio.sleep(0)

        logger.info("Validated %d scenario files", len(results))
        return results
