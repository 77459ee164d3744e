"""Tests for script body formatting helpers."""

from scenario_engine.regeneration.formatting import (
    align_call_parameters,
    align_call_parameters_in_text,
    align_tables,
    align_tables_in_text,
    replace_leading_tabs,
)


def test_replace_leading_tabs():
    text = "ТекстСценария: |\n\tИ Шаг\tс табом\n\t\t| a |\n"
    assert replace_leading_tabs(text) == "ТекстСценария: |\n    И Шаг\tс табом\n        | a |\n"


def test_align_call_parameters():
    lines = [
        "    И ОткрытьФорму",
        '        Имя = "x"',
        "        ДлинноеИмя=[Значение]",
        "    И Другой",
        '        A = "1"',
    ]
    assert align_call_parameters(lines) == [
        "    И ОткрытьФорму",
        '        Имя        = "x"',
        "        ДлинноеИмя = [Значение]",
        "    И Другой",
        '        A = "1"',
    ]


def test_align_tables():
    lines = [
        "    | Имя | Значение |",
        "    | a | длинное значение |",
        "    И шаг",
        "  |x|",
    ]
    assert align_tables(lines) == [
        "    | Имя | Значение         |",
        "    | a   | длинное значение |",
        "    И шаг",
        "  | x |",
    ]


def test_rows_with_fewer_cells_are_padded():
    assert align_tables(["| a | b |", "| c |"]) == ["| a | b |", "| c |   |"]


def test_only_script_body_is_touched():
    text = (
        "ДанныеСценария:\n"
        "    | не | таблица |\n"
        "ТекстСценария: |\n"
        "    | a | bb |\n"
        "    | ccc | d |\n"
    )
    assert align_tables_in_text(text) == (
        "ДанныеСценария:\n"
        "    | не | таблица |\n"
        "ТекстСценария: |\n"
        "    | a   | bb |\n"
        "    | ccc | d  |\n"
    )


def test_aligned_text_is_unchanged():
    text = "ТекстСценария: |\n    И Вызов\n        А  = 1\n        ББ = 2\n"
    assert align_call_parameters_in_text(text) is text


def test_crlf_body():
    text = "ТекстСценария: |\r\n    И Вызов\r\n        А = 1\r\n        ББ = 2\r\n"
    assert align_call_parameters_in_text(text) == (
        "ТекстСценария: |\r\n    И Вызов\r\n        А  = 1\r\n        ББ = 2\r\n"
    )
