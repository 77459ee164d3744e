"""Tests for the diagnostics engine."""

import pytest

from scenario_engine.diagnostics.engine import (
    GLOBAL,
    RELATED,
    DiagnosticsEngine,
    is_valid_parameter_value,
    looks_like_step,
)
from scenario_engine.diagnostics.steps import TemplateStepCatalog
from scenario_engine.diagnostics.types import DiagnosticCode, Messages, Severity
from scenario_engine.discovery.refresh_scheduler import CancellationToken
from scenario_engine.index.scenario_index import ScenarioIndex
from scenario_engine.workspace.documents import Document, InMemoryDocumentStore

from .builders import WORKSPACE, build_scenario, scenario_path


def line_of(text, fragment):
    for number, line in enumerate(text.split("\n")):
        if fragment in line:
            return number
    raise AssertionError(f"{fragment!r} not in text")


def findings(diagnostics):
    return {(d.code, d.line) for d in diagnostics}


async def make_index(files, config=None):
    index = ScenarioIndex(WORKSPACE, config, InMemoryDocumentStore(files))
    await index.refresh()
    return index


class TestHeuristics:
    """Tests for the call classification helpers."""

    def test_looks_like_step(self):
        assert looks_like_step("я жду")
        assert looks_like_step("I wait")
        assert looks_like_step("Пауза 5")
        assert looks_like_step('нажимаю "ОК"')
        assert not looks_like_step("ОткрытьФорму")
        assert not looks_like_step("")

    def test_valid_parameter_values(self):
        assert is_valid_parameter_value('"Главная"')
        assert is_valid_parameter_value("'x'")
        assert is_valid_parameter_value("[Форма]")
        assert not is_valid_parameter_value("Главная")
        assert not is_valid_parameter_value('"')
        assert not is_valid_parameter_value("[две части]")


class TestValidate:
    """Tests for DiagnosticsEngine.validate."""

    @pytest.mark.asyncio
    async def test_clean_document(self, index, steps, store):
        engine = DiagnosticsEngine(index, steps)
        for uri, text in store.files.items():
            assert engine.validate(Document(uri, text)) == []

    @pytest.mark.asyncio
    async def test_document_without_script(self, index):
        engine = DiagnosticsEngine(index)
        assert engine.validate(Document("/ws/a.scen.yaml", "ДанныеСценария:\n    Имя: \"A\"\n")) == []

    @pytest.mark.asyncio
    async def test_block_balance(self, index, steps):
        text = build_scenario("Блоки", body=["If условие", "    И я жду", "Do", "EndDo", "EndDo"])
        diagnostics = DiagnosticsEngine(index, steps).validate(Document("/ws/a.scen.yaml", text))

        end_do = [n for n, line in enumerate(text.split("\n")) if line.strip() == "EndDo"][-1]
        assert findings(diagnostics) == {
            (DiagnosticCode.UNCLOSED_DO, end_do),
            (DiagnosticCode.UNCLOSED_IF, line_of(text, "If условие")),
        }
        messages = {d.message for d in diagnostics}
        assert messages == {Messages.EXTRA_END_DO, Messages.UNMATCHED_IF}

    @pytest.mark.asyncio
    async def test_do_left_open_inside_closed_if(self, index, steps):
        text = build_scenario("Блоки", body=["If условие", "Do", "EndIf"])
        diagnostics = DiagnosticsEngine(index, steps).validate(Document("/ws/a.scen.yaml", text))

        do_line = [n for n, line in enumerate(text.split("\n")) if line.strip() == "Do"][0]
        assert findings(diagnostics) == {(DiagnosticCode.UNCLOSED_DO, do_line)}
        assert [d.message for d in diagnostics] == [Messages.UNMATCHED_DO]

    @pytest.mark.asyncio
    async def test_unclosed_quote(self, index):
        text = build_scenario("Кавычки", body=['И я нажимаю "ОК', 'И я нажимаю \\"ОК\\"'])
        diagnostics = DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text))
        assert findings(diagnostics) == {(DiagnosticCode.UNCLOSED_QUOTE, line_of(text, '"ОК'))}

    @pytest.mark.asyncio
    async def test_unknown_scenario_with_suggestion(self, library_files):
        files = dict(library_files)
        files[scenario_path("НеСуществующийСценарий")] = build_scenario("НеСуществующийСценарий")
        index = await make_index(files)

        text = build_scenario("Вызывающий", body=["И НесуществующийСценарий"])
        diagnostics = DiagnosticsEngine(index).validate(Document("/ws/Вызывающий.scen.yaml", text))

        unknown = [d for d in diagnostics if d.code == DiagnosticCode.UNKNOWN_SCENARIO]
        assert len(unknown) == 1
        assert unknown[0].severity == Severity.ERROR
        assert unknown[0].line == line_of(text, "И НесуществующийСценарий")
        assert unknown[0].message.startswith(Messages.UNKNOWN_SCENARIO)
        assert "- НеСуществующийСценарий" in unknown[0].message

    @pytest.mark.asyncio
    async def test_call_parameters(self, index):
        text = build_scenario(
            "Вызывающий",
            nested=[("ОткрытьФорму", "uid-open")],
            body=[
                "И ОткрытьФорму",
                '    Лишний = "x"',
                "    ИмяФормы = без кавычек",
                "",
                "И ОткрытьФорму",
            ],
        )
        diagnostics = DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text))
        second_call = [n for n, line in enumerate(text.split("\n")) if line == "    И ОткрытьФорму"][-1]

        assert findings(diagnostics) == {
            (DiagnosticCode.EXTRA_SCENARIO_PARAMETER, line_of(text, "Лишний")),
            (DiagnosticCode.MISSING_QUOTES, line_of(text, "без кавычек")),
            (DiagnosticCode.MISSING_SCENARIO_PARAMETER, second_call),
        }
        by_code = {d.code: d for d in diagnostics}
        assert by_code[DiagnosticCode.EXTRA_SCENARIO_PARAMETER].message == Messages.EXTRA_PARAMETER.format("Лишний")
        assert by_code[DiagnosticCode.MISSING_SCENARIO_PARAMETER].severity == Severity.WARNING
        assert "- ИмяФормы" in by_code[DiagnosticCode.MISSING_SCENARIO_PARAMETER].message

    @pytest.mark.asyncio
    async def test_without_index_only_quoting_is_checked(self):
        index = await make_index({})
        text = build_scenario("Один", body=["И Вызов", "    X = значение", '    Y = "ok"'])
        diagnostics = DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text))
        assert findings(diagnostics) == {(DiagnosticCode.MISSING_QUOTES, line_of(text, "X = значение"))}

    @pytest.mark.asyncio
    async def test_step_like_calls_are_quiet_without_catalog(self, index):
        text = build_scenario("Шаги", body=["И я жду 5 секунд", "Когда я делаю что-то"])
        assert DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text)) == []

    @pytest.mark.asyncio
    async def test_unknown_step(self, index):
        catalog = TemplateStepCatalog(['I click the button "%1 Button"'])
        text = build_scenario("Шаги", body=['Когда я делаю "что-то" странное'])
        diagnostics = DiagnosticsEngine(index, catalog).validate(Document("/ws/a.scen.yaml", text))

        assert len(diagnostics) == 1
        assert diagnostics[0].code == DiagnosticCode.UNKNOWN_STEP
        assert diagnostics[0].severity == Severity.ERROR
        assert diagnostics[0].message == Messages.UNKNOWN_STEP

    @pytest.mark.asyncio
    async def test_step_with_missing_quotes_is_a_warning(self, index):
        catalog = TemplateStepCatalog(['I click the button "%1 Button"'])
        text = build_scenario("Шаги", body=["When I click the button OK"])
        diagnostics = DiagnosticsEngine(index, catalog).validate(Document("/ws/a.scen.yaml", text))

        assert len(diagnostics) == 1
        assert diagnostics[0].code == DiagnosticCode.UNKNOWN_STEP
        assert diagnostics[0].severity == Severity.WARNING
        assert diagnostics[0].message.startswith(Messages.MISSING_QUOTES)
        assert '- I click the button "%1 Button"' in diagnostics[0].message

    @pytest.mark.asyncio
    async def test_step_like_call_is_reported_once(self, index):
        catalog = TemplateStepCatalog(['I click the button "%1 Button"'])
        text = build_scenario("Шаги", body=["И я делаю непонятное"])
        diagnostics = DiagnosticsEngine(index, catalog).validate(Document("/ws/a.scen.yaml", text))
        assert findings(diagnostics) == {(DiagnosticCode.UNKNOWN_STEP, line_of(text, "я делаю"))}

    @pytest.mark.asyncio
    async def test_step_checks_can_be_disabled(self, index):
        catalog = TemplateStepCatalog(['I click the button "%1 Button"'])
        text = build_scenario("Шаги", body=['Когда я делаю "что-то" странное'])
        assert DiagnosticsEngine(index, catalog).validate(Document("/ws/a.scen.yaml", text), RELATED) == []

    @pytest.mark.asyncio
    async def test_incomplete_sections(self, index):
        text = build_scenario("Новый", body=["И ОткрытьФорму", '    ИмяФормы = "[Форма]"'])
        diagnostics = DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text))

        header = line_of(text, "ТекстСценария:")
        assert [(d.code, d.line) for d in diagnostics] == [
            (DiagnosticCode.INCOMPLETE_BLOCK, header),
            (DiagnosticCode.INCOMPLETE_BLOCK, header),
        ]
        assert Messages.MISSING_NESTED_ENTRIES.format("ОткрытьФорму") in diagnostics[0].message
        assert Messages.MISSING_PARAMETER_ENTRIES.format("Форма") in diagnostics[1].message

    @pytest.mark.asyncio
    async def test_excluded_parameters_are_not_required(self, library_files, config):
        config.parameter_exclusions = ["ТекущаяДата"]
        index = await make_index(library_files, config)
        text = build_scenario("Один", body=['И я жду "[ТекущаяДата]"'])
        assert DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text)) == []

    @pytest.mark.asyncio
    async def test_empty_description(self, index):
        text = build_scenario("Пустой", description="")
        diagnostics = DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text))
        assert findings(diagnostics) == {(DiagnosticCode.DEFAULT_DESCRIPTION, line_of(text, "Описание:"))}

    @pytest.mark.asyncio
    async def test_missing_description_field_is_not_reported(self, index):
        text = build_scenario("Без", description=None)
        assert DiagnosticsEngine(index).validate(Document("/ws/a.scen.yaml", text)) == []


class TestDuplicateCodes:
    """Tests for project-wide duplicate code detection."""

    FILES = {
        scenario_path("А"): build_scenario("А", code="X-1"),
        scenario_path("Б"): build_scenario("Б", code="X-1"),
        scenario_path("В"): build_scenario("В", code="Y-2"),
        scenario_path("Г"): build_scenario("Г", code="Code_Placeholder"),
        scenario_path("Д"): build_scenario("Д", code="code_placeholder"),
    }

    @pytest.mark.asyncio
    async def test_duplicates_reference_each_other(self):
        index = await make_index(self.FILES)
        duplicates = DiagnosticsEngine(index).duplicate_code_diagnostics()

        assert set(duplicates) == {scenario_path("А"), scenario_path("Б")}
        diagnostic = duplicates[scenario_path("А")][0]
        assert diagnostic.code == DiagnosticCode.DUPLICATE_SCENARIO_CODE
        assert diagnostic.severity == Severity.WARNING
        assert diagnostic.message == Messages.DUPLICATE_CODE.format("X-1") + "\n- Б\n"
        text = self.FILES[scenario_path("А")]
        assert diagnostic.line == line_of(text, "Код:")

    @pytest.mark.asyncio
    async def test_cached_per_generation(self):
        index = await make_index(self.FILES)
        engine = DiagnosticsEngine(index)
        first = engine.duplicate_code_diagnostics()
        assert engine.duplicate_code_diagnostics() is first

        index.remove(scenario_path("Б"))
        assert engine.duplicate_code_diagnostics() == {}


class TestProjectScans:
    """Tests for workspace and related-document validation."""

    @pytest.mark.asyncio
    async def test_scan_workspace(self, library_files, steps):
        files = dict(library_files)
        files[scenario_path("Копия")] = build_scenario("Копия", code="SC-1")
        index = await make_index(files)

        results = await DiagnosticsEngine(index, steps).scan_workspace()

        assert set(results) == set(files)
        assert [d.code for d in results[scenario_path("Копия")]] == [DiagnosticCode.DUPLICATE_SCENARIO_CODE]
        assert [d.code for d in results[scenario_path("ОткрытьФорму")]] == [DiagnosticCode.DUPLICATE_SCENARIO_CODE]
        assert results[scenario_path("Главный")] == []

    @pytest.mark.asyncio
    async def test_scan_explicit_paths_skips_missing(self, index):
        results = await DiagnosticsEngine(index).scan_workspace(
            [scenario_path("Главный"), scenario_path("Пропавший")], GLOBAL)
        assert list(results) == [scenario_path("Главный")]

    @pytest.mark.asyncio
    async def test_cancelled_scan(self, index):
        token = CancellationToken()
        token.cancel()
        assert await DiagnosticsEngine(index).scan_workspace(cancel_token=token) == {}

    @pytest.mark.asyncio
    async def test_validate_related(self, index, store):
        engine = DiagnosticsEngine(index)
        callee = await store.open(scenario_path("ОткрытьФорму"))

        assert [ref.uri for ref in engine.related_documents(callee)] == [scenario_path("Главный")]
        assert await engine.validate_related(callee) == {scenario_path("Главный"): []}

    @pytest.mark.asyncio
    async def test_related_parents_can_be_disabled(self, library_files, config):
        config.check_related_parents = False
        index = await make_index(library_files, config)
        callee = Document(scenario_path("ОткрытьФорму"), library_files[scenario_path("ОткрытьФорму")])
        assert await DiagnosticsEngine(index).validate_related(callee) == {}
