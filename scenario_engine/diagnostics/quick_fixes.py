"""Quick fixes offered for diagnostics."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import EngineConfig
from ..regeneration.nested import regenerate_nested_calls
from ..regeneration.parameters import regenerate_parameters
from ..scenario.body import call_block_at_line, nested_call_context_at
from ..scenario.keywords import CALL_LINE_PATTERN, call_keyword, resolve_language, split_step_keyword
from ..scenario.parser import escape_double_quoted, parse_parameter_defaults
from ..scenario.sections import line_indent
from ..workspace.documents import Document, TextEdit
from .fuzzy import find_closest_strings
from .steps import apply_suggestion_values
from .types import Diagnostic, DiagnosticCode

logger = logging.getLogger(__name__)

PARAMETER_INDENT_STEP = 4


@dataclass
class QuickFix:
    """A titled set of edits resolving one diagnostic."""
    title: str
    edits: list[TextEdit] = field(default_factory=list)
    preferred: bool = False


def _replace_line(document: Document, line: int, new_text: str) -> TextEdit:
    start = document.offset_at(line, 0)
    return TextEdit(start, start + len(document.line_at(line)), new_text)


def _leading_whitespace(text: str) -> str:
    return text[:len(text) - len(text.lstrip())]


def step_fixes(document: Document, diagnostic: Diagnostic, steps, config: EngineConfig) -> list[QuickFix]:
    line_text = document.line_at(diagnostic.line)
    indent = _leading_whitespace(line_text)
    trimmed = line_text.strip()
    keyword, _ = split_step_keyword(trimmed)

    fixes = []
    seen = set()
    for suggestion in steps.suggest(trimmed, config.max_suggestions):
        replacement = apply_suggestion_values(trimmed, suggestion)
        # Templates are stored without a keyword; keep the one the line had
        if keyword and split_step_keyword(replacement)[0] is None:
            replacement = f"{keyword} {replacement}"
        if replacement in seen or replacement == trimmed:
            continue
        seen.add(replacement)
        fixes.append(QuickFix(
            title=f"Replace with: {replacement}",
            edits=[_replace_line(document, diagnostic.line, indent + replacement)],
        ))
    return fixes


def scenario_call_fixes(document: Document, diagnostic: Diagnostic, index, config: EngineConfig) -> list[QuickFix]:
    match = CALL_LINE_PATTERN.match(document.line_at(diagnostic.line))
    if not match:
        return []
    indent, name = match.group(1), match.group(3).strip()
    keyword = call_keyword(resolve_language(document.text, config.scenario_language))

    fixes = []
    for suggestion in find_closest_strings(name, index.names(), config.max_suggestions, config.suggestion_threshold):
        fixes.append(QuickFix(
            title=f"Replace with scenario: {suggestion}",
            edits=[_replace_line(document, diagnostic.line, f"{indent}{keyword} {suggestion}")],
        ))
    return fixes


def missing_parameter_fixes(document: Document, diagnostic: Diagnostic, index) -> list[QuickFix]:
    """Insert assignments for parameters the callee declares but the call omits.

    Offers one fix inserting every missing parameter and one per parameter.
    New lines go below the last existing assignment, aligned with it.
    """
    block = call_block_at_line(document.text, diagnostic.line)
    if block is None:
        context = nested_call_context_at(document.text, diagnostic.line)
        block = call_block_at_line(document.text, context.line) if context else None
    if block is None:
        return []
    record = index.lookup(block.name)
    if record is None:
        return []

    present = set(block.parameter_names)
    missing = [name for name in dict.fromkeys(record.parameters) if name.strip() and name not in present]
    if not missing:
        return []

    indent = " " * (block.indent + PARAMETER_INDENT_STEP)
    if block.parameters:
        existing_indent = line_indent(document.line_at(block.parameters[0].line))
        if existing_indent > block.indent:
            indent = " " * existing_indent

    width = max(len(name) for name in block.parameter_names + missing)
    local_defaults = parse_parameter_defaults(document.text)

    def value_for(name: str) -> str:
        if name in record.parameter_defaults:
            return record.parameter_defaults[name]
        if name in local_defaults:
            return local_defaults[name]
        return f'"{escape_double_quoted(name)}"'

    def assignment(name: str) -> str:
        return f"{indent}{name.ljust(width)} = {value_for(name)}"

    anchor_line = block.last_line
    anchor = document.offset_at(anchor_line, len(document.line_at(anchor_line)))
    eol = document.eol

    fixes = [QuickFix(
        title="Add all missing parameters",
        edits=[TextEdit(anchor, anchor, "".join(eol + assignment(name) for name in missing))],
        preferred=True,
    )]
    if len(missing) > 1:
        for name in missing:
            fixes.append(QuickFix(
                title=f"Add parameter: {name}",
                edits=[TextEdit(anchor, anchor, eol + assignment(name))],
            ))
    return fixes


def fill_section_fixes(document: Document, index, config: EngineConfig, session=None) -> list[QuickFix]:
    """Rebuild both declaration sections from the script body."""
    text = document.text
    if index is not None and len(index):
        text = regenerate_nested_calls(text, index).text
    text = regenerate_parameters(text, session, document.uri, config.parameter_exclusions).text
    if text == document.text:
        return []
    return [QuickFix(
        title="Fill declaration sections",
        edits=[TextEdit(0, len(document.text), text)],
        preferred=True,
    )]


def quick_fixes(
    document: Document,
    diagnostic: Diagnostic,
    index,
    steps=None,
    config: Optional[EngineConfig] = None,
    session=None,
) -> list[QuickFix]:
    """Quick fixes for one diagnostic.

    Args:
        document: Document the diagnostic belongs to.
        diagnostic: Diagnostic to resolve.
        index: ScenarioIndex used for scenario names and parameters.
        steps: Step catalog for unknown-step replacements.
        config: Engine configuration. Default: EngineConfig().
        session: SessionState preserving parameter data across fills.

    Returns:
        Fixes in the order they should be offered; empty when none apply.
    """
    config = config or EngineConfig()
    code = diagnostic.code

    if code == DiagnosticCode.UNKNOWN_STEP and steps is not None:
        return step_fixes(document, diagnostic, steps, config)
    if code == DiagnosticCode.UNKNOWN_SCENARIO:
        return scenario_call_fixes(document, diagnostic, index, config)
    if code == DiagnosticCode.MISSING_SCENARIO_PARAMETER:
        return missing_parameter_fixes(document, diagnostic, index)
    if code == DiagnosticCode.INCOMPLETE_BLOCK:
        return fill_section_fixes(document, index, config, session)

    logger.debug("No quick fixes for %s", code.value)
    return []
