"""Scenario document parsing for scenario-engine."""

from .body import (
    call_blocks_from_text,
    called_scenarios_from_body,
    nested_call_context_at,
    parse_call_blocks,
    used_parameters_from_body,
)
from .keywords import apply_preferred_keyword, detect_language, resolve_language
from .metadata import parse_description, parse_tab_association
from .parser import (
    build_record,
    parse_declared_parameters,
    parse_existing_parameter_data,
    parse_nested_call_names,
    parse_parameter_defaults,
    parse_scenario_file,
)
from .schema import (
    CallParameter,
    CodeSpan,
    DocumentRef,
    ParameterData,
    ScenarioCallBlock,
    ScenarioRecord,
    TabAssociation,
)
from .sections import SectionKey, SectionRange, find_section, script_body_range, section_lines

__all__ = [
    "CallParameter",
    "CodeSpan",
    "DocumentRef",
    "ParameterData",
    "ScenarioCallBlock",
    "ScenarioRecord",
    "SectionKey",
    "SectionRange",
    "TabAssociation",
    "apply_preferred_keyword",
    "build_record",
    "call_blocks_from_text",
    "called_scenarios_from_body",
    "detect_language",
    "find_section",
    "nested_call_context_at",
    "parse_call_blocks",
    "parse_declared_parameters",
    "parse_description",
    "parse_existing_parameter_data",
    "parse_nested_call_names",
    "parse_parameter_defaults",
    "parse_scenario_file",
    "parse_tab_association",
    "resolve_language",
    "script_body_range",
    "section_lines",
    "used_parameters_from_body",
]
