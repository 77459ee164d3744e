"""JSON report generator for scenario-engine results.

Generates structured JSON reports from diagnostics and repair batches.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..diagnostics.types import Diagnostic, Severity
from ..runner.result_collector import BatchResult


class JsonReporter:
    """Generates JSON reports from diagnostics and repair results."""

    def generate_diagnostics(
        self,
        diagnostics: dict[str, list[Diagnostic]],
        duration_ms: int = 0,
        error: Optional[str] = None,
    ) -> dict[str, Any]:
        """Generate a report from diagnostics grouped by document.

        Args:
            diagnostics: Diagnostics by document uri.
            duration_ms: Validation duration in milliseconds.
            error: Overall error message if validation failed.

        Returns:
            Report dictionary ready for JSON serialization.
        """
        all_items = [d for items in diagnostics.values() for d in items]
        errors = sum(1 for d in all_items if d.severity == Severity.ERROR)
        warnings = len(all_items) - errors

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "kind": "diagnostics",
            "status": "passed" if errors == 0 and error is None else "failed",
            "summary": {
                "files": len(diagnostics),
                "files_with_findings": sum(1 for items in diagnostics.values() if items),
                "errors": errors,
                "warnings": warnings,
                "duration_ms": duration_ms,
            },
            "files": [
                {
                    "path": uri,
                    "diagnostics": [d.to_dict() for d in sorted(items, key=lambda d: (d.range.start_line, d.range.start_char))],
                }
                for uri, items in sorted(diagnostics.items(), key=lambda item: item[0].lower())
                if items
            ],
            "error": error,
        }

    def generate_batch(self, batch: BatchResult, error: Optional[str] = None) -> dict[str, Any]:
        """Generate a report from a repair batch.

        Args:
            batch: Collected repair outcomes.
            error: Overall error message if the batch could not run.

        Returns:
            Report dictionary ready for JSON serialization.
        """
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "kind": "repair",
            "status": "passed" if not batch.has_errors and error is None else "failed",
            "summary": {
                "total": batch.total_count,
                "changed": len(batch.changed),
                "unchanged": len(batch.unchanged),
                "skipped": len(batch.skipped),
                "failed": len(batch.failures),
                "duration_ms": batch.duration_ms,
            },
            "changed": list(batch.changed),
            "failures": [
                {"path": failure.path, "reason": failure.reason}
                for failure in batch.failures
            ],
            "error": error,
        }

    def save(self, report: dict[str, Any], path: Path) -> Path:
        """Save report to a JSON file.

        Args:
            report: Report dictionary.
            path: Output file path.

        Returns:
            Path to the saved file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return path

    def to_json_string(self, report: dict[str, Any], pretty: bool = True) -> str:
        if pretty:
            return json.dumps(report, indent=2, ensure_ascii=False)
        return json.dumps(report, ensure_ascii=False)

    def generate_flow_output(
        self,
        report: dict[str, Any],
        command: str,
        report_path: Optional[str] = None,
    ) -> dict[str, Any]:
        """Generate flow CLI compatible JSON output.

        Follows the flow JSON output standard:
        {
            "success": bool,
            "command": str,
            "data": { ... },
            "message": str
        }

        Args:
            report: Diagnostics or repair report dictionary.
            command: CLI command that produced the report.
            report_path: Path where report was saved.

        Returns:
            Flow-compatible JSON output.
        """
        summary = report["summary"]
        success = report["status"] == "passed"

        data: dict[str, Any] = dict(summary)
        if report["kind"] == "diagnostics":
            data["files"] = report["files"]
        else:
            data["changed_files"] = report["changed"]
            data["failures"] = report["failures"]

        if report_path:
            data["report_path"] = report_path

        if report.get("error"):
            message = f"{command.capitalize()} failed: {report['error']}"
        elif report["kind"] == "diagnostics":
            message = f"{summary['errors']} error(s), {summary['warnings']} warning(s) in {summary['files']} file(s)"
        elif not success:
            message = f"{summary['failed']} of {summary['total']} files could not be repaired"
        else:
            message = f"{summary['changed']} of {summary['total']} files repaired"

        return {
            "success": success,
            "command": command,
            "data": data,
            "message": message,
        }
