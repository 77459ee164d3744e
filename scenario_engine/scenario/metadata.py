"""Extended metadata parsing: tab association and scenario description."""

import math
import re
from typing import Optional

from .schema import TabAssociation
from .sections import SectionKey, line_indent, normalize_leading_tabs, section_lines

LEGACY_MARKER_PATTERN = re.compile(r"^\s*#\s*PhaseSwitcher_(Tab|Default|OrderOnTab):\s*(.*)$")
PHASE_KEY_PATTERN = re.compile(r"^(Tab|Default|OrderOnTab):\s*(.*)$")
DESCRIPTION_PATTERN = re.compile(r"^Описание:\s*(.*)$")


def _scalar(raw: Optional[str]) -> str:
    value = (raw or "").strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    return value


def _parse_bool(raw: Optional[str]) -> Optional[bool]:
    value = _scalar(raw).lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _parse_int(raw: Optional[str]) -> Optional[int]:
    match = re.match(r"^\s*([+-]?\d+)", _scalar(raw))
    return int(match.group(1)) if match else None


def _legacy_markers(text: str) -> dict[str, str]:
    markers = {}
    for line in text.split("\n"):
        match = LEGACY_MARKER_PATTERN.match(line.rstrip("\r"))
        if match:
            markers[match.group(1)] = match.group(2).strip()
    return markers


def _extended_markers(text: str) -> dict[str, str]:
    lines = section_lines(text, SectionKey.EXTENDED_METADATA)
    markers = {}
    phase_indent = None
    for _, line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        indent = line_indent(line)
        if phase_indent is None:
            if stripped == "PhaseSwitcher:":
                phase_indent = indent
            continue
        if indent <= phase_indent:
            break
        match = PHASE_KEY_PATTERN.match(stripped)
        if match:
            markers[match.group(1)] = match.group(2).strip()
    return markers


def parse_tab_association(text: str) -> Optional[TabAssociation]:
    """Read the tab grouping of a scenario.

    Values from the ``KOTМетаданные/PhaseSwitcher`` block override legacy
    ``# PhaseSwitcher_*`` comment markers key by key. Returns None unless a
    non-empty tab name is present.
    """
    markers = _legacy_markers(text)
    markers.update(_extended_markers(text))

    tab_name = _scalar(markers.get("Tab"))
    if not tab_name:
        return None

    default_enabled = _parse_bool(markers.get("Default"))
    order = _parse_int(markers.get("OrderOnTab"))
    return TabAssociation(
        tab_name=tab_name,
        default_enabled=bool(default_enabled),
        order=order if order is not None else math.inf,
    )


def _normalize_description(value: str) -> str:
    value = value.strip()
    lines = [line.strip() for line in value.split("\n") if line.strip()]
    # A lone dash is the placeholder left by scenario templates
    if lines and all(line == "-" for line in lines):
        return ""
    return value


def _dedent(lines: list[str]) -> list[str]:
    indents = [line_indent(line) for line in lines if line.strip()]
    if not indents:
        return lines
    width = min(indents)
    return [line[width:] if line.strip() else "" for line in lines]


def parse_description(text: str) -> Optional[str]:
    """Read ``KOTМетаданные/Описание``.

    Returns:
        The description text ("" for an empty or placeholder value), or
        None if the document has no description field
    """
    lines = section_lines(text, SectionKey.EXTENDED_METADATA)
    for index, (_, line) in enumerate(lines):
        stripped = line.strip()
        match = DESCRIPTION_PATTERN.match(stripped)
        if not match:
            continue

        raw = match.group(1).strip()
        if not raw.startswith(("|", ">")):
            return _normalize_description(_scalar(raw))

        field_indent = line_indent(line)
        body = []
        for _, body_line in lines[index + 1:]:
            if body_line.strip() and line_indent(body_line) <= field_indent:
                break
            body.append(normalize_leading_tabs(body_line))
        return _normalize_description("\n".join(_dedent(body)))
    return None
