"""Diagnostic data types, codes and messages."""

from dataclasses import dataclass
from enum import Enum

from ..workspace.documents import Range

DIAGNOSTIC_SOURCE = "scenario-engine"
CODE_PREFIX = "scenarioEngine."


class Severity(str, Enum):
    """Diagnostic severity levels."""
    ERROR = "error"
    WARNING = "warning"


class DiagnosticCode(str, Enum):
    """Stable diagnostic codes."""
    UNCLOSED_IF = CODE_PREFIX + "unclosedIf"
    UNCLOSED_DO = CODE_PREFIX + "unclosedDo"
    UNCLOSED_QUOTE = CODE_PREFIX + "unclosedQuote"
    UNKNOWN_STEP = CODE_PREFIX + "unknownStep"
    UNKNOWN_SCENARIO = CODE_PREFIX + "unknownScenario"
    EXTRA_SCENARIO_PARAMETER = CODE_PREFIX + "extraScenarioParameter"
    MISSING_SCENARIO_PARAMETER = CODE_PREFIX + "missingScenarioParameter"
    MISSING_QUOTES = CODE_PREFIX + "missingQuotes"
    INCOMPLETE_BLOCK = CODE_PREFIX + "incompleteBlock"
    DEFAULT_DESCRIPTION = CODE_PREFIX + "defaultDescription"
    DUPLICATE_SCENARIO_CODE = CODE_PREFIX + "duplicateScenarioCode"


class Messages:
    """User-facing diagnostic texts."""
    UNKNOWN_STEP = "Unknown Gherkin step."
    UNKNOWN_SCENARIO = "Unknown nested scenario call."
    SUGGESTION_HEADER = "Maybe you meant:"
    EXTRA_PARAMETER = "Extra parameter for called scenario: {0}."
    MISSING_PARAMETERS = "Missing parameters for called scenario:"
    VALUE_NOT_QUOTED = "Parameter value should be in quotes or square brackets ([Parameter])."
    SECTION_INCOMPLETE = "Section is incomplete and can be auto-filled."
    MISSING_NESTED_ENTRIES = "Missing NestedScenarios entries: {0}"
    MISSING_PARAMETER_ENTRIES = "Missing ScenarioParameters entries: {0}"
    UNMATCHED_IF = "If block is not closed with EndIf."
    EXTRA_END_IF = "EndIf without matching If."
    UNMATCHED_DO = "Do block is not closed with EndDo."
    EXTRA_END_DO = "EndDo without matching Do."
    UNMATCHED_QUOTE = "Unclosed double quote in line."
    MISSING_QUOTES = "Likely missing quotes in step/call arguments."
    DEFAULT_DESCRIPTION = "Scenario description is empty."
    DUPLICATE_CODE = 'Duplicate scenario code "{0}" found in other scenarios:'


@dataclass(frozen=True)
class Diagnostic:
    """One finding attached to a document range."""
    range: Range
    message: str
    severity: Severity
    code: DiagnosticCode
    source: str = DIAGNOSTIC_SOURCE

    @property
    def line(self) -> int:
        return self.range.start_line

    def to_dict(self) -> dict:
        return {
            "line": self.range.start_line + 1,
            "start": self.range.start_char,
            "end": self.range.end_char,
            "severity": self.severity.value,
            "code": self.code.value,
            "message": self.message,
            "source": self.source,
        }


def suggestion_suffix(suggestions: list[str]) -> str:
    if not suggestions:
        return ""
    return f"\n{Messages.SUGGESTION_HEADER}\n- " + "\n- ".join(suggestions) + "\n"


def list_message(header: str, items: list[str]) -> str:
    if not items:
        return header
    return f"{header}\n- " + "\n- ".join(items) + "\n"
