"""DSL section scanner for scenario-engine.

Locates fixed top-level sections of a scenario document by text scanning.
Every other component (record builder, regeneration, diagnostics) addresses
the document through these helpers so section boundaries are decided in
one place.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SectionKey(str, Enum):
    """Top-level keys of the scenario DSL."""
    METADATA = "ДанныеСценария"
    PARAMETERS = "ПараметрыСценария"
    NESTED = "ВложенныеСценарии"
    SCRIPT = "ТекстСценария"
    EXTENDED_METADATA = "KOTМетаданные"


TAB_WIDTH = 4

TOP_LEVEL_KEY_PATTERN = re.compile(r"^[A-Za-zА-Яа-яЁё0-9_]+:")


@dataclass
class SectionRange:
    """Location of one top-level section within a document."""
    key: str
    header_start: int
    content_start: int
    content_end: int
    header_line: int
    first_line: int
    last_line: int
    has_following_section: bool
    content: str

    @property
    def line_count(self) -> int:
        return max(0, self.last_line - self.first_line + 1)


def normalize_leading_tabs(line: str) -> str:
    """Replace each leading tab with four spaces."""
    stripped = line.lstrip(" \t")
    prefix = line[:len(line) - len(stripped)]
    if "\t" not in prefix:
        return line
    return prefix.replace("\t", " " * TAB_WIDTH) + stripped


def line_indent(line: str) -> int:
    normalized = normalize_leading_tabs(line)
    return len(normalized) - len(normalized.lstrip(" "))


def is_top_level_key(line: str) -> bool:
    """Check whether a line opens a top-level section."""
    line = line.rstrip("\r")
    if not line.strip() or line.startswith("#"):
        return False
    return bool(TOP_LEVEL_KEY_PATTERN.match(line))


def _key_name(key) -> str:
    return key.value if isinstance(key, SectionKey) else str(key)


def _split_lines(text: str) -> list[tuple[int, str]]:
    """Return (start_offset, line_without_eol) pairs."""
    result = []
    offset = 0
    for raw in text.split("\n"):
        result.append((offset, raw.rstrip("\r")))
        offset += len(raw) + 1
    return result


def find_section(text: str, key) -> Optional[SectionRange]:
    """Find a top-level section by key.

    Args:
        text: Full document text
        key: SectionKey or raw key name

    Returns:
        SectionRange, or None if the header does not occur at column 0
    """
    name = _key_name(key)
    header = name + ":"
    lines = _split_lines(text)

    header_index = None
    for index, (_, line) in enumerate(lines):
        if line.startswith(header):
            header_index = index
            break
    if header_index is None:
        return None

    header_start = lines[header_index][0]
    content_start = header_start + len(header)

    next_index = None
    for index in range(header_index + 1, len(lines)):
        if is_top_level_key(lines[index][1]):
            next_index = index
            break

    if next_index is None:
        content_end = len(text)
        last_line = len(lines) - 1
    else:
        # Offset of the newline preceding the next key
        content_end = lines[next_index][0] - 1
        last_line = next_index - 1

    return SectionRange(
        key=name,
        header_start=header_start,
        content_start=content_start,
        content_end=content_end,
        header_line=header_index,
        first_line=header_index + 1,
        last_line=last_line,
        has_following_section=next_index is not None,
        content=text[content_start:content_end],
    )


def section_lines(text: str, key) -> list[tuple[int, str]]:
    """Return (line_number, line) pairs of a section body."""
    section = find_section(text, key)
    if section is None:
        return []
    lines = text.split("\n")
    return [
        (number, lines[number].rstrip("\r"))
        for number in range(section.first_line, section.last_line + 1)
    ]


def script_body_range(text: str) -> Optional[range]:
    """Line numbers of the script body, or None if there is no body header."""
    section = find_section(text, SectionKey.SCRIPT)
    if section is None:
        return None
    return range(section.first_line, section.last_line + 1)


def script_body_lines(text: str) -> list[tuple[int, str]]:
    return section_lines(text, SectionKey.SCRIPT)


def present_sections(text: str) -> set[str]:
    """Names of the known top-level sections present in a document."""
    return {key.value for key in SectionKey if find_section(text, key) is not None}
