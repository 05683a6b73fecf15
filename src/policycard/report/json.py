"""
JSON report rendering for policycard.

The JSON form is the archival format of an AuditReport. It round-trips:
a report loaded back with load_json_report() verifies against the same
evidence hash, because evidence is serialized exactly as the hash chain
serializes it (ISO timestamps, plain JSON values).
"""

import json
from pathlib import Path
from typing import Any

from policycard.schema import AuditReport


def build_report_dict(report: AuditReport) -> dict[str, Any]:
    """Convert a report to plain JSON-compatible data."""
    return report.model_dump(mode="json")


def generate_json_report(report: AuditReport, indent: int = 2) -> str:
    """
    Render a report as JSON text.

    Args:
        report: The report to render
        indent: JSON indentation level (default: 2)

    Returns:
        JSON string
    """
    return json.dumps(build_report_dict(report), indent=indent, ensure_ascii=False)


def write_json_report(report: AuditReport, path: Path | str, indent: int = 2) -> Path:
    """Write a report to a JSON file and return the path."""
    path = Path(path)
    path.write_text(generate_json_report(report, indent=indent) + "\n", encoding="utf-8")
    return path


def load_json_report(content: str | bytes) -> AuditReport:
    """
    Load a report from JSON text.

    Raises:
        pydantic.ValidationError: If the JSON is not a valid report
    """
    return AuditReport.model_validate_json(content)
