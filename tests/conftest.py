"""Shared fixtures: scenario document builder and an in-memory workspace."""

import pytest
import pytest_asyncio

from scenario_engine.config import EngineConfig
from scenario_engine.diagnostics.steps import StepTemplate, TemplateStepCatalog
from scenario_engine.index.scenario_index import ScenarioIndex
from scenario_engine.workspace.documents import Document, InMemoryDocumentStore

from .builders import WORKSPACE, build_scenario, scenario_path


@pytest.fixture
def make_scenario():
    return build_scenario


@pytest.fixture
def config():
    return EngineConfig(scan_directory=".", refresh_debounce=0.01)


@pytest.fixture
def library_files():
    """A small project: two callable scenarios and one caller."""
    return {
        scenario_path("ОткрытьФорму"): build_scenario(
            "ОткрытьФорму",
            uid="uid-open",
            code="SC-1",
            parameters=[("ИмяФормы", "Главная")],
            body=['И я открываю форму "[ИмяФормы]"'],
        ),
        scenario_path("ЗакрытьФорму"): build_scenario(
            "ЗакрытьФорму",
            uid="uid-close",
            code="SC-2",
            body=["И я закрываю текущее окно"],
        ),
        scenario_path("Главный"): build_scenario(
            "Главный",
            uid="uid-main",
            code="SC-3",
            nested=[("ОткрытьФорму", "uid-open"), ("ЗакрытьФорму", "uid-close")],
            body=[
                "И ОткрытьФорму",
                '    ИмяФормы = "Главная"',
                "И ЗакрытьФорму",
            ],
        ),
    }


@pytest.fixture
def store(library_files):
    return InMemoryDocumentStore(library_files)


@pytest_asyncio.fixture
async def index(store, config):
    index = ScenarioIndex(WORKSPACE, config, store)
    await index.refresh()
    return index


@pytest.fixture
def steps():
    return TemplateStepCatalog([
        StepTemplate('I open form "%1 Name"', 'И я открываю форму "%1 Name"'),
        'I click the button "%1 Button"',
        'I input "%1 Value" in the field "%2 Field"',
        StepTemplate("I close the current window", "И я закрываю текущее окно"),
        StepTemplate("I wait", "И я жду"),
    ])


@pytest.fixture
def document_for():
    def make(name, text):
        return Document(scenario_path(name), text)
    return make
