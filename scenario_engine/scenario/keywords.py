"""Gherkin keyword tables for the bilingual scenario DSL."""

import re
from typing import Optional

LANGUAGES = ("en", "ru")

# Canonical keyword per role and language, used when rewriting lines
CANONICAL_KEYWORDS = {
    "and": {"en": "And", "ru": "И"},
    "given": {"en": "Given", "ru": "Допустим"},
    "when": {"en": "When", "ru": "Когда"},
    "then": {"en": "Then", "ru": "Тогда"},
    "but": {"en": "But", "ru": "Но"},
}

KEYWORD_ALIASES = {
    "and": ["And", "И", "К тому же"],
    "given": ["Given", "Допустим", "Дано"],
    "when": ["When", "Когда", "Если"],
    "then": ["Then", "Тогда"],
    "but": ["But", "Но"],
}

CALL_KEYWORDS = ("And", "И", "Допустим")

_ALL_KEYWORDS = sorted(
    {alias for aliases in KEYWORD_ALIASES.values() for alias in aliases},
    key=len,
    reverse=True,
)
_KEYWORD_ALTERNATION = "|".join(re.escape(k) for k in _ALL_KEYWORDS)

GHERKIN_STEP_PATTERN = re.compile(rf"^\s*({_KEYWORD_ALTERNATION})\s+(.+)$", re.IGNORECASE)
CALL_LINE_PATTERN = re.compile(r"^(\s*)(And|И|Допустим)\s+(.+)$", re.IGNORECASE)
LANGUAGE_TAG_PATTERN = re.compile(r"^\s*#\s*language\s*:\s*([A-Za-z]+)\s*$", re.IGNORECASE)


def keyword_role(keyword: str) -> Optional[str]:
    lowered = keyword.lower()
    for role, aliases in KEYWORD_ALIASES.items():
        if any(alias.lower() == lowered for alias in aliases):
            return role
    return None


def split_step_keyword(line: str) -> tuple[Optional[str], str]:
    """Split a step line into (keyword, rest); keyword is None if absent."""
    match = GHERKIN_STEP_PATTERN.match(line)
    if not match:
        return None, line.strip()
    return match.group(1), match.group(2).strip()


def detect_language(text: str) -> Optional[str]:
    """Return the ``#language:`` tag value if it names a supported language."""
    for line in text.split("\n"):
        match = LANGUAGE_TAG_PATTERN.match(line)
        if match:
            language = match.group(1).lower()
            return language if language in LANGUAGES else None
    return None


def resolve_language(text: str, default: str = "en") -> str:
    return detect_language(text) or (default if default in LANGUAGES else "en")


def call_keyword(language: str) -> str:
    return CANONICAL_KEYWORDS["and"].get(language, "And")


def apply_preferred_keyword(line: str, language: str) -> str:
    """Rewrite a step line's leading keyword into the given language.

    Indentation and the rest of the line are kept; lines without a known
    keyword are returned unchanged.
    """
    match = GHERKIN_STEP_PATTERN.match(line)
    if not match:
        return line
    role = keyword_role(match.group(1))
    if role is None:
        return line
    replacement = CANONICAL_KEYWORDS[role].get(language)
    if replacement is None:
        return line
    return line[:match.start(1)] + replacement + line[match.end(1):]
