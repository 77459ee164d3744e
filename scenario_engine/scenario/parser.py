"""Scenario record builder for scenario-engine.

Extracts ScenarioRecord objects from scenario document text. Sections are
located through the section scanner; values inside a section are read
line by line so partially edited documents still yield whatever is there.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from .metadata import parse_description, parse_tab_association
from .schema import (
    CodeSpan,
    DEFAULT_OUTGOING_FLAG,
    DEFAULT_PARAMETER_TYPE,
    DocumentRef,
    ParameterData,
    ScenarioRecord,
)
from .sections import SectionKey, find_section, section_lines

logger = logging.getLogger(__name__)

PARAMETER_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-zА-Яа-яЁё0-9_-]+$")
BRACKET_PARAMETER_PATTERN = re.compile(r"^\[[A-Za-zА-Яа-яЁё0-9_-]+\]$")
FIELD_PATTERN = re.compile(r"^\s*([^\s:#-][^:]*?):\s*(.*?)\s*$")

PARAMETER_ITEM_KEY = "ПараметрыСценария"
NESTED_ITEM_KEY = "ВложенныеСценарии"

NAME_FIELD = "Имя"
UID_FIELD = "UID"
CODE_FIELD = "Код"
VALUE_FIELD = "Значение"
TYPE_FIELD = "ТипПараметра"
OUTGOING_FIELD = "ИсходящийПараметр"
NESTED_NAME_FIELD = "ИмяСценария"
NESTED_UID_FIELD = "UIDВложенныйСценарий"


@dataclass
class ListItem:
    """One ``- <Key><N>:`` item of a list section."""
    line: int
    fields: dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> Optional[str]:
        return self.fields.get(name)


def unquote_scalar(raw: Optional[str]) -> str:
    """Read an inline YAML scalar, unescaping quoted forms."""
    value = (raw or "").strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        try:
            loaded = yaml.safe_load(value)
        except yaml.YAMLError:
            return value[1:-1]
        if isinstance(loaded, str):
            return loaded
        return value[1:-1]
    return value


def escape_double_quoted(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _is_quoted(value: str) -> bool:
    return len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"')


def normalize_parameter_name(raw: str) -> str:
    """Strip quotes and surrounding brackets from a parameter name."""
    value = unquote_scalar(raw).strip()
    if value.startswith("["):
        value = value[1:]
    if value.endswith("]"):
        value = value[:-1]
    return value.strip()


def normalize_call_value(raw: Optional[str], fallback_name: str) -> str:
    """Normalize a declared value into the form used on call lines.

    Quoted literals and ``[Param]`` references are kept verbatim, other
    values are double-quoted, and an empty value falls back to the quoted
    parameter name.
    """
    value = (raw or "").strip()
    if not value:
        return f'"{escape_double_quoted(fallback_name)}"'
    if BRACKET_PARAMETER_PATTERN.match(value) or _is_quoted(value):
        return value
    return f'"{escape_double_quoted(value)}"'


def parse_list_items(text: str, section: SectionKey, item_key: str) -> list[ListItem]:
    """Split a list section into items and read each item's fields.

    Fields keep their raw (still quoted) text; the first occurrence of a
    field within an item wins.
    """
    item_pattern = re.compile(rf"^\s*-\s*{re.escape(item_key)}\d*:\s*$")
    items: list[ListItem] = []
    current: Optional[ListItem] = None

    for number, line in section_lines(text, section):
        if item_pattern.match(line):
            current = ListItem(line=number)
            items.append(current)
            continue
        if current is None:
            continue
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = FIELD_PATTERN.match(line)
        if match and match.group(1) not in current.fields:
            current.fields[match.group(1)] = match.group(2)

    return items


def _metadata_field(text: str, name: str) -> Optional[tuple[int, str, str]]:
    """Find a metadata field; returns (line_number, line, value) or None."""
    pattern = re.compile(rf"^\s*{re.escape(name)}:\s*(.*?)\s*$")
    for number, line in section_lines(text, SectionKey.METADATA):
        match = pattern.match(line)
        if match:
            value = unquote_scalar(match.group(1)).strip()
            if value:
                return number, line, value
    return None


def parse_scenario_name(text: str) -> Optional[str]:
    found = _metadata_field(text, NAME_FIELD)
    return found[2] if found else None


def parse_parameter_defaults(text: str) -> dict[str, str]:
    """Map declared parameter names to their normalized call values.

    Args:
        text: Full document text

    Returns:
        Ordered mapping of parameter name to call value; the first item
        declaring a name wins and invalid names are skipped
    """
    defaults: dict[str, str] = {}
    for item in parse_list_items(text, SectionKey.PARAMETERS, PARAMETER_ITEM_KEY):
        raw_name = item.get(NAME_FIELD)
        if not raw_name:
            continue
        name = normalize_parameter_name(raw_name)
        if not name or not PARAMETER_IDENTIFIER_PATTERN.match(name) or name in defaults:
            continue
        defaults[name] = normalize_call_value(item.get(VALUE_FIELD), name)
    return defaults


def parse_declared_parameters(text: str) -> list[str]:
    """Parameter names of the declaration section in document order.

    Duplicates are kept, so a section that repeats a name differs from the
    list derived from the script body.
    """
    names = []
    for item in parse_list_items(text, SectionKey.PARAMETERS, PARAMETER_ITEM_KEY):
        raw_name = item.get(NAME_FIELD)
        if raw_name:
            name = normalize_parameter_name(raw_name)
            if name:
                names.append(name)
    return names


def parse_nested_call_names(text: str) -> list[str]:
    names = []
    for item in parse_list_items(text, SectionKey.NESTED, NESTED_ITEM_KEY):
        name = unquote_scalar(item.get(NESTED_NAME_FIELD)).strip()
        if name:
            names.append(name)
    return names


def parse_nested_call_uids(text: str) -> dict[str, str]:
    """Declared nested-call UIDs by scenario name."""
    uids: dict[str, str] = {}
    for item in parse_list_items(text, SectionKey.NESTED, NESTED_ITEM_KEY):
        name = unquote_scalar(item.get(NESTED_NAME_FIELD)).strip()
        uid = unquote_scalar(item.get(NESTED_UID_FIELD)).strip()
        if name and uid and name not in uids:
            uids[name] = uid
    return uids


def parse_existing_parameter_data(text: str) -> dict[str, ParameterData]:
    """Read value, type and outgoing flag of every declared parameter.

    Items without a ``Значение`` field are skipped. Quoted values are
    unescaped so they can be written back verbatim.
    """
    data: dict[str, ParameterData] = {}
    for item in parse_list_items(text, SectionKey.PARAMETERS, PARAMETER_ITEM_KEY):
        raw_name = item.get(NAME_FIELD)
        raw_value = item.get(VALUE_FIELD)
        if not raw_name or raw_value is None:
            continue
        name = normalize_parameter_name(raw_name)
        if not name or name in data:
            continue
        data[name] = ParameterData(
            value=unquote_scalar(raw_value),
            type=unquote_scalar(item.get(TYPE_FIELD)) or DEFAULT_PARAMETER_TYPE,
            outgoing=unquote_scalar(item.get(OUTGOING_FIELD)) or DEFAULT_OUTGOING_FLAG,
        )
    return data


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def build_record(text: str, source: DocumentRef) -> Optional[ScenarioRecord]:
    """Build a ScenarioRecord from document text.

    Args:
        text: Full document text
        source: Reference to the document the text came from

    Returns:
        ScenarioRecord, or None if the document declares no scenario name
    """
    text = text.removeprefix("\ufeff")

    name = parse_scenario_name(text)
    if not name:
        return None

    uid_field = _metadata_field(text, UID_FIELD)
    code_field = _metadata_field(text, CODE_FIELD)
    code_span = None
    if code_field:
        line_number, line, _ = code_field
        code_span = CodeSpan(line=line_number, start=len(line) - len(line.lstrip()), end=len(line))

    defaults = parse_parameter_defaults(text)
    parameters = list(defaults) if defaults else _unique(parse_declared_parameters(text))

    return ScenarioRecord(
        name=name,
        source=source,
        uid=uid_field[2] if uid_field else None,
        scenario_code=code_field[2] if code_field else None,
        code_span=code_span,
        parameters=parameters,
        parameter_defaults=defaults,
        nested_calls=_unique(parse_nested_call_names(text)),
        description=parse_description(text),
        tab=parse_tab_association(text),
    )


def parse_scenario_file(
    file_path: Union[str, Path],
    scan_directory: Optional[Union[str, Path]] = None,
) -> Optional[ScenarioRecord]:
    """Parse a scenario file into a ScenarioRecord.

    Args:
        file_path: Path to the scenario file.
        scan_directory: Root used to compute the record's relative folder.

    Returns:
        Parsed ScenarioRecord, or None if the file declares no scenario.

    Raises:
        FileNotFoundError: If the scenario file doesn't exist.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Scenario file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
        text = f.read()

    return build_record(text, DocumentRef.for_path(file_path, scan_directory))


def has_section(text: str, key: SectionKey) -> bool:
    return find_section(text, key) is not None
