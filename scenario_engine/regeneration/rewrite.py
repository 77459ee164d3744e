"""Shared section rewrite for the regeneration engine."""

from dataclasses import dataclass, field

from ..scenario.sections import SectionKey, find_section

ITEM_INDENT = " " * 4
FIELD_INDENT = " " * 8


@dataclass
class RegenerationResult:
    """Outcome of regenerating one declaration section."""
    changed: bool
    text: str
    section_found: bool = True
    items: list[str] = field(default_factory=list)


def render_item(item_key: str, number: int, fields: list[tuple[str, str]]) -> str:
    """Render one list item with already-escaped field values."""
    lines = [f"{ITEM_INDENT}- {item_key}{number}:"]
    lines.extend(f'{FIELD_INDENT}{name}: "{value}"' for name, value in fields)
    return "\n".join(lines)


def replace_section_content(text: str, key: SectionKey, rendered_items: list[str]) -> RegenerationResult:
    """Replace everything after ``Key:`` up to the next top-level key.

    A non-empty list starts on the line after the header. A newline is
    appended only when another top-level section follows, which keeps one
    empty line between sections. Identical content leaves the text alone.
    """
    section = find_section(text, key)
    if section is None:
        return RegenerationResult(changed=False, text=text, section_found=False)

    eol = "\r\n" if "\r\n" in text else "\n"
    # The newline before the next key is outside the content range, so a
    # CRLF document needs the extra "\r" that pairs with it
    trailing = ""
    if section.has_following_section:
        trailing = eol + ("\r" if eol == "\r\n" else "")
    if rendered_items:
        content = eol + eol.join(item.replace("\n", eol) for item in rendered_items) + trailing
    else:
        content = trailing

    if content == section.content:
        return RegenerationResult(changed=False, text=text)

    new_text = text[:section.content_start] + content + text[section.content_end:]
    return RegenerationResult(changed=new_text != text, text=new_text)
