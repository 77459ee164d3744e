"""Script body analysis: scenario calls, parameter references, call context."""

import re
from typing import Iterable, Optional

from .keywords import CALL_LINE_PATTERN
from .schema import CallParameter, ScenarioCallBlock
from .sections import line_indent, script_body_lines

ASSIGNMENT_PATTERN = re.compile(r"^(\s*)([A-Za-zА-Яа-яЁё0-9_-]+)\s*=\s*(.*)$")
PARAMETER_REFERENCE_PATTERN = re.compile(r"(?<!\\)\[([A-Za-zА-Яа-яЁё0-9_-]+)(?<!\\)\]")
CALL_NAME_PATTERN = re.compile(r"^(?:And|И|Допустим)\s+(.+)$", re.IGNORECASE)
INLINE_PARAMETERS_SUFFIX = re.compile(r"^(.*?)\s*<<.+>>\s*$")


def _is_table_or_docstring(stripped: str) -> bool:
    return stripped.startswith("|") or stripped.startswith('"""')


def parse_call_blocks(lines: Iterable[tuple[int, str]]) -> list[ScenarioCallBlock]:
    """Find scenario call lines and their parameter assignment lines.

    Args:
        lines: (line_number, text) pairs of the script body

    Returns:
        Call blocks in document order. Assignment lines must be indented
        deeper than the call line; a blank or comment line ends a block.
    """
    lines = list(lines)
    blocks: list[ScenarioCallBlock] = []
    index = 0
    while index < len(lines):
        number, text = lines[index]
        index += 1
        match = CALL_LINE_PATTERN.match(text)
        if not match:
            continue
        name = match.group(3).strip()
        if not name or '"' in name:
            continue

        name_start = match.start(3)
        block = ScenarioCallBlock(
            line=number,
            keyword=match.group(2),
            name=name,
            indent=line_indent(text),
            name_start=name_start,
            name_end=name_start + len(name),
        )

        while index < len(lines):
            next_number, next_text = lines[index]
            stripped = next_text.strip()
            if not stripped or stripped.startswith("#"):
                break
            assignment = ASSIGNMENT_PATTERN.match(next_text)
            if not assignment or line_indent(next_text) <= block.indent:
                break
            block.parameters.append(
                CallParameter(line=next_number, name=assignment.group(2), value=assignment.group(3))
            )
            index += 1

        blocks.append(block)
    return blocks


def call_blocks_from_text(text: str) -> list[ScenarioCallBlock]:
    return parse_call_blocks(script_body_lines(text))


def call_block_at_line(text: str, line: int) -> Optional[ScenarioCallBlock]:
    for block in call_blocks_from_text(text):
        if block.line == line:
            return block
    return None


def called_scenarios_from_body(text: str) -> list[str]:
    """Names called from the script body, first-seen and unique.

    Lines containing double quotes are steps with literal arguments, and
    table rows or docstring delimiters never carry calls.
    """
    called: list[str] = []
    for _, line in script_body_lines(text):
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or _is_table_or_docstring(stripped):
            continue
        if '"' in stripped:
            continue
        match = CALL_NAME_PATTERN.match(stripped)
        if not match:
            continue
        name = match.group(1).strip()
        suffix = INLINE_PARAMETERS_SUFFIX.match(name)
        if suffix:
            name = suffix.group(1).strip()
        if name and name not in called:
            called.append(name)
    return called


def normalize_exclusions(exclusions: Optional[Iterable[str]]) -> set[str]:
    """Exclusion names with optional surrounding brackets removed."""
    result = set()
    for item in exclusions or ():
        value = item.strip()
        if value.startswith("["):
            value = value[1:]
        if value.endswith("]"):
            value = value[:-1]
        value = value.strip()
        if value:
            result.add(value)
    return result


def used_parameters_from_body(text: str, exclusions: Optional[Iterable[str]] = None) -> list[str]:
    """``[Param]`` references in the script body, first-seen and unique."""
    excluded = normalize_exclusions(exclusions)
    used: list[str] = []
    for _, line in script_body_lines(text):
        for match in PARAMETER_REFERENCE_PATTERN.finditer(line):
            name = match.group(1).strip()
            if name and name not in excluded and name not in used:
                used.append(name)
    return used


def nested_call_context_at(text: str, line: int) -> Optional[ScenarioCallBlock]:
    """Return the scenario call enclosing a body line.

    The call line itself, or any deeper-indented line below it before the
    indentation returns to the call's level, belongs to that call. Nested
    calls are tracked with a stack so the innermost one wins.
    """
    stack: list[ScenarioCallBlock] = []
    for number, body_line in script_body_lines(text):
        if number > line:
            break
        match = CALL_LINE_PATTERN.match(body_line)
        if match and '"' not in match.group(3):
            indent = line_indent(body_line)
            while stack and stack[-1].indent >= indent:
                stack.pop()
            name = match.group(3).strip()
            start = match.start(3)
            stack.append(ScenarioCallBlock(
                line=number,
                keyword=match.group(2),
                name=name,
                indent=indent,
                name_start=start,
                name_end=start + len(name),
            ))
            continue

        stripped = body_line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        indent = line_indent(body_line)
        while stack and indent <= stack[-1].indent:
            stack.pop()
    return stack[-1] if stack else None
