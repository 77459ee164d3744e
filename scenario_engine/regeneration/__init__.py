"""Regeneration module - rebuild declaration sections from the script body."""

from ..scenario.body import called_scenarios_from_body, used_parameters_from_body
from .formatting import align_call_parameters_in_text, align_tables_in_text, replace_leading_tabs
from .nested import default_uid_factory, expected_nested_calls, regenerate_nested_calls, should_regenerate_nested
from .parameters import regenerate_parameters, should_regenerate_parameters
from .rewrite import RegenerationResult

__all__ = [
    "RegenerationResult",
    "align_call_parameters_in_text",
    "align_tables_in_text",
    "called_scenarios_from_body",
    "default_uid_factory",
    "expected_nested_calls",
    "regenerate_nested_calls",
    "regenerate_parameters",
    "replace_leading_tabs",
    "should_regenerate_nested",
    "should_regenerate_parameters",
    "used_parameters_from_body",
]
