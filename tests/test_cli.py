"""Tests for the command line interface."""

import json

import pytest
from click.testing import CliRunner

from scenario_engine.cli import cli

from .builders import build_scenario


@pytest.fixture
def project(tmp_path, library_files):
    """Scenario project on disk with a config scanning the project root."""
    (tmp_path / "scenario-engine.yaml").write_text('scan_directory: "."\n', encoding="utf-8")
    for uri, text in library_files.items():
        name = uri.rsplit("/", 1)[-1]
        (tmp_path / name).write_text(text, encoding="utf-8")
    return tmp_path


def invoke(*args):
    result = CliRunner().invoke(cli, list(args), obj={})
    return result, json.loads(result.stdout)


def test_index(project):
    result, payload = invoke("index", str(project))

    assert result.exit_code == 0
    assert payload["success"] is True
    assert payload["command"] == "index"
    names = [s["name"] for s in payload["data"]["scenarios"]]
    assert names == ["Главный", "ЗакрытьФорму", "ОткрытьФорму"]
    opener = payload["data"]["scenarios"][2]
    assert opener["uid"] == "uid-open"
    assert opener["parameters"] == ["ИмяФормы"]


def test_check_clean_project(project):
    result, payload = invoke("check", str(project))

    assert result.exit_code == 0
    assert payload["success"] is True
    assert payload["data"]["errors"] == 0
    assert payload["data"]["files"] == []


def test_check_reports_errors(project, tmp_path):
    broken = project / "Сломанный.scen.yaml"
    broken.write_text(build_scenario("Сломанный", body=["If условие"]), encoding="utf-8")
    report = tmp_path / "out" / "report.json"

    result, payload = invoke("check", str(project), str(broken), "--report", str(report))

    assert result.exit_code == 1
    assert payload["success"] is False
    assert payload["data"]["errors"] == 1
    assert payload["data"]["report_path"] == str(report)
    saved = json.loads(report.read_text(encoding="utf-8"))
    assert saved["files"][0]["diagnostics"][0]["code"] == "scenarioEngine.unclosedIf"


def test_fix_fills_sections(project):
    path = project / "Новый.scen.yaml"
    path.write_text(build_scenario("Новый", body=["И ЗакрытьФорму"]), encoding="utf-8")

    result, payload = invoke("fix", str(project))

    assert result.exit_code == 0
    assert payload["data"]["changed"] == 1
    assert payload["data"]["total"] == 4
    assert path.read_text(encoding="utf-8") == build_scenario(
        "Новый", nested=[("ЗакрытьФорму", "uid-close")], body=["И ЗакрытьФорму"])


def test_fix_dry_run(project):
    path = project / "Новый.scen.yaml"
    original = build_scenario("Новый", body=["И ЗакрытьФорму"])
    path.write_text(original, encoding="utf-8")

    result, payload = invoke("fix", str(project), str(path), "--dry-run")

    assert result.exit_code == 0
    assert payload["data"]["changed_files"] == [str(path.resolve())]
    assert path.read_text(encoding="utf-8") == original


def test_related(project):
    result, payload = invoke("related", str(project), "ОткрытьФорму")

    assert result.exit_code == 0
    assert payload["data"]["callers"] == ["Главный"]
    assert payload["data"]["documents"] == [str((project / "Главный.scen.yaml").resolve())]


def test_related_unknown_scenario(project):
    result, payload = invoke("related", str(project), "Нет")
    assert result.exit_code == 1
    assert payload["message"] == "Unknown scenario: Нет"


def test_missing_scan_directory(tmp_path):
    (tmp_path / "scenario-engine.yaml").write_text('scan_directory: "missing"\n', encoding="utf-8")

    result, payload = invoke("index", str(tmp_path))

    assert result.exit_code == 1
    assert payload["success"] is False
    assert payload["message"].startswith("Scan directory not found")


def test_invalid_config(tmp_path):
    (tmp_path / "scenario-engine.yaml").write_text("max_suggestions: many\n", encoding="utf-8")

    result, payload = invoke("check", str(tmp_path))

    assert result.exit_code == 1
    assert "max_suggestions" in payload["message"]
