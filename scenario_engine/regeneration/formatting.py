"""Script body formatting used by the repair pass."""

import re

from ..scenario.keywords import CALL_LINE_PATTERN
from ..scenario.sections import SectionKey, find_section, normalize_leading_tabs

ALIGNABLE_ASSIGNMENT = re.compile(r"^(\s+)([A-Za-zА-Яа-яЁё0-9_-]+)\s*=\s*(.*)$")
TABLE_ROW = re.compile(r"^(\s*)\|(.*)\|\s*$")


def replace_leading_tabs(text: str) -> str:
    """Turn leading tabs on every line into four spaces each."""
    if "\t" not in text:
        return text
    return "\n".join(normalize_leading_tabs(line) for line in text.split("\n"))


def align_call_parameters(lines: list[str]) -> list[str]:
    """Pad parameter names under each call so the ``=`` signs line up."""
    lines = list(lines)
    index = 0
    while index < len(lines):
        match = CALL_LINE_PATTERN.match(lines[index])
        index += 1
        if not match or '"' in match.group(3):
            continue

        call_indent = len(match.group(1))
        params = []
        while index < len(lines):
            line = lines[index]
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                break
            assignment = ALIGNABLE_ASSIGNMENT.match(line)
            if not assignment or len(assignment.group(1)) <= call_indent:
                break
            params.append((index, assignment.group(1), assignment.group(2), assignment.group(3).lstrip()))
            index += 1

        if len(params) > 1:
            width = max(len(name) for _, _, name, _ in params)
            for line_index, indent, name, value in params:
                lines[line_index] = f"{indent}{name.ljust(width)} = {value}"
    return lines


def align_tables(lines: list[str]) -> list[str]:
    """Pad Gherkin table cells so every column has a common width."""
    lines = list(lines)
    index = 0
    while index < len(lines):
        if not TABLE_ROW.match(lines[index]):
            index += 1
            continue

        rows = []
        while index < len(lines):
            match = TABLE_ROW.match(lines[index])
            if not match:
                break
            rows.append((index, match.group(1), [cell.strip() for cell in match.group(2).split("|")]))
            index += 1

        columns = max(len(cells) for _, _, cells in rows)
        widths = [0] * columns
        for _, _, cells in rows:
            for column, cell in enumerate(cells):
                widths[column] = max(widths[column], len(cell))
        for line_index, indent, cells in rows:
            padded = [
                (cells[column] if column < len(cells) else "").ljust(widths[column])
                for column in range(columns)
            ]
            lines[line_index] = f"{indent}| {' | '.join(padded)} |"
    return lines


def _rewrite_body(text: str, transform) -> str:
    section = find_section(text, SectionKey.SCRIPT)
    if section is None:
        return text
    # Body starts on the line after the header
    newline = text.find("\n", section.content_start)
    if newline == -1 or newline >= section.content_end:
        return text
    start = newline + 1
    body = text[start:section.content_end]
    eol = "\r\n" if "\r\n" in body else "\n"
    lines = body.split(eol)
    new_lines = transform(lines)
    if new_lines == lines:
        return text
    return text[:start] + eol.join(new_lines) + text[section.content_end:]


def align_call_parameters_in_text(text: str) -> str:
    return _rewrite_body(text, align_call_parameters)


def align_tables_in_text(text: str) -> str:
    return _rewrite_body(text, align_tables)
