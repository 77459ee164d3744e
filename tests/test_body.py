"""Tests for script body analysis and keywords."""

from scenario_engine.scenario.body import (
    call_block_at_line,
    call_blocks_from_text,
    called_scenarios_from_body,
    nested_call_context_at,
    used_parameters_from_body,
)
from scenario_engine.scenario.keywords import (
    apply_preferred_keyword,
    call_keyword,
    detect_language,
    keyword_role,
    resolve_language,
    split_step_keyword,
)


def script(*lines):
    return "ТекстСценария: |\n" + "\n".join(lines) + "\n"


class TestCallBlocks:
    """Tests for call block parsing."""

    def test_call_with_parameters(self):
        text = script(
            "    И ОткрытьФорму",
            '        ИмяФормы = "Главная"',
            "        Режим    = [Режим]",
            "    И я жду",
        )
        blocks = call_blocks_from_text(text)
        assert [b.name for b in blocks] == ["ОткрытьФорму", "я жду"]

        first = blocks[0]
        assert first.line == 1
        assert first.keyword == "И"
        assert first.indent == 4
        assert first.name_start == 6
        assert first.name_end == 6 + len("ОткрытьФорму")
        assert first.parameter_names == ["ИмяФормы", "Режим"]
        assert first.parameters[1].value == "[Режим]"
        assert first.last_line == 3

    def test_assignment_must_be_deeper(self):
        text = script("    And Login", '    User = "x"')
        block = call_blocks_from_text(text)[0]
        assert block.parameters == []

    def test_blank_line_ends_block(self):
        text = script("    And Login", "", '        User = "x"')
        assert call_blocks_from_text(text)[0].parameters == []

    def test_quoted_line_is_not_a_call(self):
        assert call_blocks_from_text(script('    And I click "OK"')) == []

    def test_call_block_at_line(self):
        text = script("    Given Setup", "    And Login")
        assert call_block_at_line(text, 2).name == "Login"
        assert call_block_at_line(text, 5) is None


class TestCalledScenarios:
    """Tests for called_scenarios_from_body."""

    def test_first_seen_unique(self):
        text = script(
            "    И Б",
            "    And А",
            "    Допустим Б",
            '    И я нажимаю "ОК"',
            "    | И Таблица |",
            "    # И Комментарий",
            "    Когда Не вызов",
        )
        assert called_scenarios_from_body(text) == ["Б", "А"]

    def test_inline_parameters_suffix_is_stripped(self):
        assert called_scenarios_from_body(script("    And Login <<User, Password>>")) == ["Login"]

    def test_order_matters(self):
        assert called_scenarios_from_body(script("    And A", "    And B")) == ["A", "B"]
        assert called_scenarios_from_body(script("    And B", "    And A")) == ["B", "A"]


class TestUsedParameters:
    """Tests for used_parameters_from_body."""

    def test_unique_and_ordered(self):
        text = script(
            '    And I input "[Логин]" in "[Поле]"',
            "    And I wait [Логин] seconds",
            '    And I input "\\[Экранировано\\]"',
        )
        assert used_parameters_from_body(text) == ["Логин", "Поле"]

    def test_exclusions_with_or_without_brackets(self):
        text = script("    And [A] [B] [C]")
        assert used_parameters_from_body(text, ["[A]", "C"]) == ["B"]

    def test_references_outside_body_are_ignored(self):
        text = "ДанныеСценария:\n    Имя: \"[Нет]\"\n" + script("    And [Да]")
        assert used_parameters_from_body(text) == ["Да"]


class TestNestedCallContext:
    """Tests for nested_call_context_at."""

    TEXT = script(
        "    И Внешний",
        "        Параметр = 1",
        "        И Внутренний",
        "            Другой = 2",
        "    И Следующий",
    )

    def test_innermost_call_wins(self):
        assert nested_call_context_at(self.TEXT, 4).name == "Внутренний"
        assert nested_call_context_at(self.TEXT, 2).name == "Внешний"

    def test_indentation_returns_to_call_level(self):
        assert nested_call_context_at(self.TEXT, 5).name == "Следующий"

    def test_outside_any_call(self):
        assert nested_call_context_at(script("    Когда шаг"), 1) is None


class TestKeywords:
    """Tests for keyword helpers."""

    def test_roles(self):
        assert keyword_role("И") == "and"
        assert keyword_role("допустим") == "given"
        assert keyword_role("Если") == "when"
        assert keyword_role("Unknown") is None

    def test_split(self):
        assert split_step_keyword("  К тому же шаг") == ("К тому же", "шаг")
        assert split_step_keyword("без ключевого слова") == (None, "без ключевого слова")

    def test_language(self):
        assert detect_language("#language: ru\nТекстСценария: |\n") == "ru"
        assert detect_language("ТекстСценария: |\n") is None
        assert resolve_language("", "ru") == "ru"
        assert resolve_language("", "de") == "en"
        assert call_keyword("ru") == "И"
        assert call_keyword("en") == "And"

    def test_apply_preferred_keyword(self):
        assert apply_preferred_keyword("    Когда я жду", "en") == "    When я жду"
        assert apply_preferred_keyword("    And шаг", "ru") == "    И шаг"
        assert apply_preferred_keyword("    просто текст", "en") == "    просто текст"
