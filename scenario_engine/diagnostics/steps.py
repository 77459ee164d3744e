"""Step catalog: recognizes Gherkin step lines and suggests close templates.

Templates are step texts whose arguments are written as placeholders such
as ``"%1 Name"`` or ``'%2 Value'``. A body line matches a template when,
after stripping the leading keyword, it equals the template with each
placeholder replaced by a quoted literal or a ``[Param]`` reference.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import yaml

from ..errors import ConfigError
from .fuzzy import normalized_similarity

logger = logging.getLogger(__name__)

DEFAULT_STEP_THRESHOLD = 0.25

PLACEHOLDER_PATTERN = re.compile(r""""%\d+\s+[^"]*"|'%\d+\s+[^']*'""")
LEADING_KEYWORD_PATTERN = re.compile(
    r"^(?:And|But|Then|When|Given|If|Но|Тогда|Когда|Если|И|К тому же|Допустим)\s+",
    re.IGNORECASE,
)
LITERAL_PATTERN = re.compile(
    r""""([^"\\]*(?:\\.[^"\\]*)*)"|'([^'\\]*(?:\\.[^'\\]*)*)'|\[[A-Za-zА-Яа-яЁё0-9_-]+\]"""
)
ARGUMENT_REGEX = r"""(?:"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|\[[A-Za-zА-Яа-яЁё0-9_-]+\])"""
_TOKEN = "\x00"


class StepCatalog(Protocol):
    """What the diagnostics engine needs from a step library."""

    @property
    def available(self) -> bool:
        ...

    def is_known_step(self, line: str) -> bool:
        ...

    def suggest(self, line: str, max_results: int = 3) -> list[str]:
        ...


def strip_keyword(text: str) -> str:
    return LEADING_KEYWORD_PATTERN.sub("", text.strip(), count=1).strip()


def has_placeholders(text: str) -> bool:
    return bool(PLACEHOLDER_PATTERN.search(text))


def normalize_for_suggestion(text: str) -> str:
    """Reduce a step to its wording: no keyword, arguments or punctuation."""
    text = strip_keyword(text)
    text = PLACEHOLDER_PATTERN.sub(" ", text)
    text = re.sub(r'"[^"]*"', " ", text)
    text = re.sub(r"'[^']*'", " ", text)
    text = re.sub(r"\[[^\]]+\]", " ", text)
    text = re.sub(r"[.,;:!?()]", " ", text)
    return re.sub(r"\s+", " ", text).strip().lower()


def template_regex(template: str) -> re.Pattern:
    with_tokens = PLACEHOLDER_PATTERN.sub(_TOKEN, strip_keyword(template))
    pattern = re.escape(with_tokens).replace(re.escape(_TOKEN), ARGUMENT_REGEX)
    # re.escape leaves spaces alone; any whitespace run matches any run
    pattern = re.sub(r"(?:\\\s|\s)+", r"\\s+", pattern)
    return re.compile(f"^{pattern}$", re.IGNORECASE)


def missing_quotes_regex(template: str) -> Optional[re.Pattern]:
    """Template regex that also accepts unquoted arguments."""
    parts = PLACEHOLDER_PATTERN.split(template)
    if len(parts) < 2:
        return None
    argument = r"""(?:"([^"]+)"|'([^']+)'|([^"'\r\n]+?))"""
    pattern = argument.join(re.escape(part) for part in parts)
    return re.compile(f"^{pattern}$", re.IGNORECASE)


def looks_like_missing_quotes(line: str, suggestions: list[str]) -> bool:
    """Whether a line fits a suggested template once quotes are added.

    Only applies when the line has no quotes at all and every suggestion
    takes arguments.
    """
    if '"' in line or "'" in line:
        return False
    if not suggestions or any(not has_placeholders(s) for s in suggestions):
        return False

    trimmed = strip_keyword(line)
    for suggestion in suggestions:
        matcher = missing_quotes_regex(strip_keyword(suggestion))
        if matcher is None:
            continue
        match = matcher.match(trimmed)
        if not match:
            continue
        groups = match.groups()
        # Every third group is the unquoted form of one argument
        if any((groups[i] or "").strip() for i in range(2, len(groups), 3)):
            return True
    return False


def _numeric_candidates(line: str) -> list[str]:
    text = strip_keyword(line)
    text = re.sub(r""""[^"]*"|'[^']*'|\[[^\]]+\]""", " ", text)
    return re.findall(r"\b\d+(?:[.,]\d+)?\b", text)


def apply_suggestion_values(original_line: str, suggestion: str) -> str:
    """Fill a template's placeholders with the original line's arguments.

    Quoted literals and ``[Param]`` references are used first, then bare
    numbers (quoted to match the placeholder); leftover placeholders stay.
    """
    literals = [m.group(0) for m in LITERAL_PATTERN.finditer(original_line)]
    numbers = _numeric_candidates(original_line)
    literal_index = 0
    number_index = 0

    def fill(match: re.Match) -> str:
        nonlocal literal_index, number_index
        placeholder = match.group(0)
        if literal_index < len(literals):
            literal_index += 1
            return literals[literal_index - 1]
        if number_index < len(numbers):
            quote = placeholder[0]
            number_index += 1
            return f"{quote}{numbers[number_index - 1]}{quote}"
        return placeholder

    return PLACEHOLDER_PATTERN.sub(fill, suggestion)


@dataclass
class StepTemplate:
    """One step definition, optionally with a Russian variant."""
    text: str
    russian: Optional[str] = None

    def variants(self) -> list[str]:
        return [self.text] + ([self.russian] if self.russian else [])


class TemplateStepCatalog:
    """Step catalog backed by an in-memory list of templates."""

    def __init__(self, templates: Optional[list[Union[str, StepTemplate]]] = None,
                 threshold: float = DEFAULT_STEP_THRESHOLD):
        self.templates = [
            t if isinstance(t, StepTemplate) else StepTemplate(str(t))
            for t in (templates or [])
        ]
        self.threshold = threshold
        self._regexes: dict[str, re.Pattern] = {}

    @property
    def available(self) -> bool:
        return bool(self.templates)

    def _regex(self, template: str) -> re.Pattern:
        key = strip_keyword(template)
        if key not in self._regexes:
            self._regexes[key] = template_regex(template)
        return self._regexes[key]

    def is_known_step(self, line: str) -> bool:
        text = strip_keyword(line)
        if not text:
            return False
        for template in self.templates:
            for variant in template.variants():
                if self._regex(variant).match(text):
                    return True
        return False

    def suggest(self, line: str, max_results: int = 3) -> list[str]:
        normalized = normalize_for_suggestion(line)
        if not normalized:
            return []

        scores: dict[str, float] = {}
        for template in self.templates:
            for variant in template.variants():
                candidate = normalize_for_suggestion(variant)
                if not candidate:
                    continue
                score = normalized_similarity(normalized, candidate)
                if score > scores.get(variant, -1.0):
                    scores[variant] = score

        ranked = [(score, variant) for variant, score in scores.items() if score >= self.threshold]
        ranked.sort(key=lambda item: item[0], reverse=True)
        return [variant for _, variant in ranked[:max(1, max_results)]]


def load_step_catalog(path: Optional[Union[str, Path]], threshold: float = DEFAULT_STEP_THRESHOLD) -> TemplateStepCatalog:
    """Load step templates from a YAML or plain-text file.

    YAML files hold a list whose entries are template strings or mappings
    with ``en`` and optional ``ru`` keys (a top-level ``steps`` key is also
    accepted). Other files list one template per line; blank lines and
    ``#`` comments are skipped.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    if path is None:
        return TemplateStepCatalog([], threshold)

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Steps file not found: {path}")

    text = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() not in (".yaml", ".yml"):
        templates = [
            line.strip() for line in text.splitlines()
            if line.strip() and not line.strip().startswith("#")
        ]
        return TemplateStepCatalog(templates, threshold)

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in steps file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("steps")
    if data is None:
        data = []
    if not isinstance(data, list):
        raise ConfigError(f"Steps file must contain a list of templates: {path}")

    templates = []
    for entry in data:
        if isinstance(entry, str):
            templates.append(StepTemplate(entry))
        elif isinstance(entry, dict) and isinstance(entry.get("en"), str):
            russian = entry.get("ru")
            templates.append(StepTemplate(entry["en"], russian if isinstance(russian, str) else None))
        else:
            logger.warning("Skipping malformed step entry in %s: %r", path, entry)

    logger.debug("Loaded %d step templates from %s", len(templates), path)
    return TemplateStepCatalog(templates, threshold)
