"""Nested-call declaration regeneration.

Rebuilds ``ВложенныеСценарии`` from the scenario calls found in the script
body, in call order, with UIDs resolved through the index.
"""

import logging
import uuid
from typing import Callable, Optional

from ..scenario.body import called_scenarios_from_body
from ..scenario.parser import (
    NESTED_ITEM_KEY,
    NESTED_NAME_FIELD,
    NESTED_UID_FIELD,
    escape_double_quoted,
    parse_nested_call_names,
    parse_nested_call_uids,
)
from ..scenario.sections import SectionKey
from .rewrite import RegenerationResult, render_item, replace_section_content

logger = logging.getLogger(__name__)


def default_uid_factory() -> str:
    return str(uuid.uuid4())


def expected_nested_calls(text: str, index=None) -> list[str]:
    """Calls the nested section should declare.

    Without an index every call-shaped body line counts. With an index
    only names that resolve to a known scenario are kept, since plain
    steps share the call syntax.
    """
    called = called_scenarios_from_body(text)
    if index is None:
        return called
    return [name for name in called if index.lookup(name) is not None]


def should_regenerate_nested(text: str, index=None) -> bool:
    """Order-sensitive comparison of body calls against the declared list."""
    return expected_nested_calls(text, index) != parse_nested_call_names(text)


def regenerate_nested_calls(
    text: str,
    index,
    uid_factory: Optional[Callable[[], str]] = None,
) -> RegenerationResult:
    """Rewrite the nested-call section from the script body.

    Args:
        text: Full document text.
        index: ScenarioIndex used to resolve names and UIDs.
        uid_factory: Generates a UID for a callee whose record has none
            and which the section did not already declare with one.

    Returns:
        RegenerationResult with the (possibly) rewritten text.
    """
    uid_factory = uid_factory or default_uid_factory
    declared_uids = parse_nested_call_uids(text)
    names = expected_nested_calls(text, index)

    rendered = []
    for number, name in enumerate(names, start=1):
        record = index.lookup(name)
        uid = (record.uid if record else None) or declared_uids.get(name) or uid_factory()
        rendered.append(render_item(NESTED_ITEM_KEY, number, [
            (NESTED_UID_FIELD, escape_double_quoted(uid)),
            (NESTED_NAME_FIELD, escape_double_quoted(name)),
        ]))

    result = replace_section_content(text, SectionKey.NESTED, rendered)
    result.items = names
    if result.changed:
        logger.debug("Nested calls regenerated: %s", ", ".join(names) or "(none)")
    return result
