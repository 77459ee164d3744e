"""CLI entry point for scenario-engine.

Usage:
    scenario-engine [--config FILE] [--steps FILE] [--pretty] [--verbose] COMMAND ...

All commands print one JSON object in the flow output format.
"""

import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click

from .config import load_config
from .diagnostics.engine import FULL, DiagnosticsEngine
from .diagnostics.steps import TemplateStepCatalog, load_step_catalog
from .errors import ScenarioEngineError
from .index.call_graph import CallGraph
from .index.scenario_index import ScenarioIndex
from .reporting.json_reporter import JsonReporter
from .runner.executor import RepairConfig, RepairExecutor

logger = logging.getLogger(__name__)


def output(ctx: click.Context, payload: dict) -> None:
    """Print a flow JSON payload to stdout."""
    if ctx.obj.get("pretty"):
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        click.echo(json.dumps(payload, ensure_ascii=False))


def output_error(ctx: click.Context, command: str, message: str, **extra) -> None:
    """Output error in flow JSON format and exit with status 1."""
    output(ctx, {
        "success": False,
        "command": command,
        "data": extra or None,
        "message": message,
    })
    sys.exit(1)


def _load(ctx: click.Context, root: str):
    """Load config, step catalog and an index over the scan root.

    Returns:
        (config, steps, index, project_root)
    """
    project_root = Path(root).resolve()
    config = load_config(ctx.obj.get("config_path"), project_root=project_root)

    steps_path = ctx.obj.get("steps_path") or config.steps_file
    if steps_path:
        steps_file = Path(steps_path)
        if not steps_file.is_absolute() and ctx.obj.get("steps_path") is None:
            steps_file = project_root / steps_file
        steps = load_step_catalog(steps_file, config.step_suggestion_threshold)
    else:
        steps = TemplateStepCatalog([], config.step_suggestion_threshold)

    scan_root = config.scan_root(project_root)
    if not scan_root.is_dir():
        raise ScenarioEngineError(f"Scan directory not found: {scan_root}")

    index = ScenarioIndex(scan_root, config)
    asyncio.run(index.refresh())
    return config, steps, index, project_root


def _resolve_files(files: tuple[str, ...]) -> list[str]:
    return [str(Path(f).resolve()) for f in files]


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file (default: scenario-engine.yaml in ROOT).")
@click.option("--steps", "steps_path", type=click.Path(dir_okay=False), default=None,
              help="Step catalog file (YAML or one template per line).")
@click.option("--pretty", is_flag=True, help="Pretty print output.")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], steps_path: Optional[str], pretty: bool, verbose: bool):
    """Scenario index, diagnostics and repair tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj.update(config_path=config_path, steps_path=steps_path, pretty=pretty)


@cli.command("index")
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
@click.pass_context
def index_command(ctx: click.Context, root: str):
    """Scan ROOT and print the scenario index."""
    try:
        config, _, index, _ = _load(ctx, root)
    except ScenarioEngineError as e:
        output_error(ctx, "index", str(e))

    scenarios = [
        {
            "name": record.name,
            "path": record.uri,
            "folder": record.source.relative_path,
            "uid": record.uid,
            "code": record.scenario_code,
            "parameters": record.parameters,
            "calls": record.nested_calls,
            "tab": record.tab.tab_name if record.tab else None,
        }
        for record in sorted(index.records(), key=lambda r: r.name.lower())
    ]
    output(ctx, {
        "success": True,
        "command": "index",
        "data": {"scan_root": str(index.scan_root), "scenarios": scenarios},
        "message": f"Indexed {len(scenarios)} scenarios",
    })


@cli.command("check")
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--report", "report_path", type=click.Path(dir_okay=False), default=None,
              help="Also save the full report to this file.")
@click.pass_context
def check_command(ctx: click.Context, root: str, files: tuple[str, ...], report_path: Optional[str]):
    """Validate FILES (or every scenario under ROOT)."""
    start_time = time.time()
    try:
        config, steps, index, _ = _load(ctx, root)
    except ScenarioEngineError as e:
        output_error(ctx, "check", str(e))

    engine = DiagnosticsEngine(index, steps, config)

    async def run() -> dict:
        if not files:
            return await engine.scan_workspace()
        duplicates = engine.duplicate_code_diagnostics()
        results = {}
        for uri in _resolve_files(files):
            document = await index.store.open(uri)
            results[uri] = engine.validate(document, FULL) + list(duplicates.get(uri, []))
        return results

    try:
        diagnostics = asyncio.run(run())
    except OSError as e:
        output_error(ctx, "check", f"Failed to read scenario: {e}")

    reporter = JsonReporter()
    report = reporter.generate_diagnostics(diagnostics, duration_ms=int((time.time() - start_time) * 1000))
    saved = str(reporter.save(report, Path(report_path))) if report_path else None

    flow_output = reporter.generate_flow_output(report, "check", saved)
    output(ctx, flow_output)
    if not flow_output["success"]:
        sys.exit(1)


@cli.command("fix")
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Report what would change without writing.")
@click.option("--report", "report_path", type=click.Path(dir_okay=False), default=None,
              help="Also save the full report to this file.")
@click.pass_context
def fix_command(ctx: click.Context, root: str, files: tuple[str, ...], dry_run: bool, report_path: Optional[str]):
    """Normalize, align and regenerate sections of FILES (or every scenario)."""
    try:
        _, _, index, _ = _load(ctx, root)
    except ScenarioEngineError as e:
        output_error(ctx, "fix", str(e))

    executor = RepairExecutor(index, repair_config=RepairConfig(write_changes=not dry_run))
    paths = _resolve_files(files) if files else sorted((r.uri for r in index.records()), key=str.lower)
    batch = asyncio.run(executor.run_batch(paths))

    reporter = JsonReporter()
    report = reporter.generate_batch(batch)
    saved = str(reporter.save(report, Path(report_path))) if report_path else None

    flow_output = reporter.generate_flow_output(report, "fix", saved)
    output(ctx, flow_output)
    if not flow_output["success"]:
        sys.exit(1)


@cli.command("related")
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.argument("name")
@click.pass_context
def related_command(ctx: click.Context, root: str, name: str):
    """List documents that call scenario NAME, directly or transitively."""
    try:
        config, _, index, _ = _load(ctx, root)
    except ScenarioEngineError as e:
        output_error(ctx, "related", str(e))

    if name not in index:
        output_error(ctx, "related", f"Unknown scenario: {name}")

    graph = CallGraph.from_records(index.records())
    source = graph.source_of(name)
    related = graph.related_documents(name, config.related_max_files, exclude_uri=source.uri if source else None)
    output(ctx, {
        "success": True,
        "command": "related",
        "data": {
            "scenario": name,
            "callers": sorted(graph.callers_of(name), key=str.lower),
            "documents": [ref.uri for ref in related],
        },
        "message": f"{len(related)} related documents",
    })


def main():
    """Main CLI entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
