"""Scenario document builders shared by the tests."""

WORKSPACE = "/ws"


def build_scenario(
    name,
    uid="",
    code="",
    parameters=(),
    nested=(),
    body=(),
    description="Проверка сценария",
):
    """Render a scenario document the way the regeneration engine writes it.

    Args:
        name: Scenario name.
        uid: Scenario UID (omitted when empty).
        code: Scenario code (omitted when empty).
        parameters: (name, value) pairs of the parameter section.
        nested: (name, uid) pairs of the nested-call section.
        body: Script body lines, without the four-space body indent.
        description: Description text; None drops the metadata block.
    """
    lines = ["ДанныеСценария:", f'    Имя: "{name}"']
    if uid:
        lines.append(f'    UID: "{uid}"')
    if code:
        lines.append(f'    Код: "{code}"')
    lines.append("")

    lines.append("ПараметрыСценария:")
    for number, (param, value) in enumerate(parameters, start=1):
        lines += [
            f"    - ПараметрыСценария{number}:",
            f'        НомерСтроки: "{number}"',
            f'        Имя: "{param}"',
            f'        Значение: "{value}"',
            '        ТипПараметра: "Строка"',
            '        ИсходящийПараметр: "No"',
        ]
    lines.append("")

    lines.append("ВложенныеСценарии:")
    for number, (callee, callee_uid) in enumerate(nested, start=1):
        lines += [
            f"    - ВложенныеСценарии{number}:",
            f'        UIDВложенныйСценарий: "{callee_uid}"',
            f'        ИмяСценария: "{callee}"',
        ]
    lines.append("")

    lines.append("ТекстСценария: |")
    lines += [("    " + line) if line else "" for line in body]

    if description is not None:
        lines.append("")
        lines.append("KOTМетаданные:")
        lines.append(f'    Описание: "{description}"')
    return "\n".join(lines) + "\n"


def scenario_path(name):
    return f"{WORKSPACE}/{name}.scen.yaml"
