"""Diagnostics module - scenario validation, suggestions and quick fixes."""

from .engine import CHANGE, FULL, GLOBAL, RELATED, SAVE, DiagnosticsEngine, ValidationOptions
from .fuzzy import find_closest_strings, levenshtein_distance, string_similarity
from .quick_fixes import QuickFix, quick_fixes
from .steps import StepCatalog, StepTemplate, TemplateStepCatalog, load_step_catalog
from .types import Diagnostic, DiagnosticCode, Messages, Severity

__all__ = [
    "CHANGE",
    "FULL",
    "GLOBAL",
    "RELATED",
    "SAVE",
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticsEngine",
    "Messages",
    "QuickFix",
    "Severity",
    "StepCatalog",
    "StepTemplate",
    "TemplateStepCatalog",
    "ValidationOptions",
    "find_closest_strings",
    "levenshtein_distance",
    "load_step_catalog",
    "quick_fixes",
    "string_similarity",
]
