"""Parameter declaration regeneration.

Rebuilds ``ПараметрыСценария`` from the ``[Param]`` references in the
script body. Values come from the document itself, then from the session
cache (which remembers values of parameters that were temporarily
removed), then from a fallback that uses the parameter name.
"""

import logging
from typing import Iterable, Optional

from ..scenario.body import used_parameters_from_body
from ..scenario.parser import (
    NAME_FIELD,
    OUTGOING_FIELD,
    PARAMETER_ITEM_KEY,
    TYPE_FIELD,
    VALUE_FIELD,
    escape_double_quoted,
    parse_declared_parameters,
    parse_existing_parameter_data,
)
from ..scenario.schema import DEFAULT_OUTGOING_FLAG, DEFAULT_PARAMETER_TYPE, ParameterData
from ..scenario.sections import SectionKey
from ..workspace.session import SessionState
from .rewrite import RegenerationResult, render_item, replace_section_content

logger = logging.getLogger(__name__)

LINE_NUMBER_FIELD = "НомерСтроки"


def fallback_parameter(name: str) -> ParameterData:
    return ParameterData(value=name, type=DEFAULT_PARAMETER_TYPE, outgoing=DEFAULT_OUTGOING_FLAG)


def should_regenerate_parameters(text: str, exclusions: Optional[Iterable[str]] = None) -> bool:
    """Order-sensitive comparison of body references against declarations."""
    return used_parameters_from_body(text, exclusions) != parse_declared_parameters(text)


def regenerate_parameters(
    text: str,
    session: Optional[SessionState] = None,
    document_uri: str = "",
    exclusions: Optional[Iterable[str]] = None,
) -> RegenerationResult:
    """Rewrite the parameter section from the script body.

    Args:
        text: Full document text.
        session: Session cache of parameter data. A throwaway cache is used
            when omitted, so only document values are preserved.
        document_uri: Key of the document in the session cache.
        exclusions: Parameter names never declared.

    Returns:
        RegenerationResult with the (possibly) rewritten text.
    """
    session = session or SessionState()
    used = used_parameters_from_body(text, exclusions)

    # Document values win over the cache, per entry
    known = session.merge_parameter_data(document_uri, parse_existing_parameter_data(text))

    rendered = []
    for number, name in enumerate(used, start=1):
        data = known.get(name) or fallback_parameter(name)
        rendered.append(render_item(PARAMETER_ITEM_KEY, number, [
            (LINE_NUMBER_FIELD, str(number)),
            (NAME_FIELD, escape_double_quoted(name)),
            (VALUE_FIELD, escape_double_quoted(data.value)),
            (TYPE_FIELD, escape_double_quoted(data.type or DEFAULT_PARAMETER_TYPE)),
            (OUTGOING_FIELD, escape_double_quoted(data.outgoing or DEFAULT_OUTGOING_FLAG)),
        ]))

    result = replace_section_content(text, SectionKey.PARAMETERS, rendered)
    result.items = used

    if result.changed:
        for name in used:
            if name not in known:
                session.remember_parameter(document_uri, name, fallback_parameter(name))
        logger.debug("Parameters regenerated: %s", ", ".join(used) or "(none)")
    return result
