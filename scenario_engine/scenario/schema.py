"""Scenario data models for scenario-engine.

Defines dataclasses for the records extracted from scenario documents.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union


DEFAULT_PARAMETER_TYPE = "Строка"
DEFAULT_OUTGOING_FLAG = "No"


@dataclass(frozen=True)
class DocumentRef:
    """Reference to the document a record was built from."""
    uri: str
    relative_path: str = ""

    @classmethod
    def for_path(cls, path: Union[str, Path], scan_directory: Optional[Union[str, Path]] = None) -> "DocumentRef":
        path = Path(path)
        relative = ""
        if scan_directory is not None:
            try:
                relative = path.parent.relative_to(Path(scan_directory)).as_posix()
            except ValueError:
                relative = ""
            if relative == ".":
                relative = ""
        return cls(uri=str(path), relative_path=relative)


@dataclass(frozen=True)
class CodeSpan:
    """Location of the scenario code field."""
    line: int
    start: int
    end: int


@dataclass(frozen=True)
class TabAssociation:
    """Tab grouping metadata of a scenario."""
    tab_name: str
    default_enabled: bool = False
    order: float = math.inf


@dataclass
class ParameterData:
    """Declared value, type and outgoing flag of one parameter."""
    value: str
    type: str = DEFAULT_PARAMETER_TYPE
    outgoing: str = DEFAULT_OUTGOING_FLAG


@dataclass
class ScenarioRecord:
    """Everything the engine knows about one scenario document."""
    name: str
    source: DocumentRef
    uid: Optional[str] = None
    scenario_code: Optional[str] = None
    code_span: Optional[CodeSpan] = None
    parameters: list[str] = field(default_factory=list)
    parameter_defaults: dict[str, str] = field(default_factory=dict)
    nested_calls: list[str] = field(default_factory=list)
    description: Optional[str] = None
    tab: Optional[TabAssociation] = None

    @property
    def uri(self) -> str:
        return self.source.uri


@dataclass
class CallParameter:
    """A ``name = value`` assignment under a scenario call line."""
    line: int
    name: str
    value: str


@dataclass
class ScenarioCallBlock:
    """A scenario call line plus its parameter assignment lines."""
    line: int
    keyword: str
    name: str
    indent: int
    name_start: int
    name_end: int
    parameters: list[CallParameter] = field(default_factory=list)

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]

    @property
    def last_line(self) -> int:
        return self.parameters[-1].line if self.parameters else self.line
