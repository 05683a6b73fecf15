"""
CLI entry point for policycard.

This module provides the Typer-based command-line interface for policycard.

Commands:
    validate    Validate a policy card and list every issue found
    audit       Evaluate capabilities against a policy card and report
    verify      Recompute the evidence hash of a saved JSON report

Architecture Note:
    The CLI is a thin shell over the library: it reads files, delegates to
    policycard.policy / policycard.audit, and renders with policycard.report.
"""

import json
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from policycard import __version__
from policycard.audit import PolicyCardAuditor, verify_report
from policycard.discovery import extract_compliance_metadata
from policycard.log import DEFAULT_LOG_LEVEL, configure_logging
from policycard.policy import parse_policy_card
from policycard.report import (
    generate_json_report,
    load_json_report,
    print_console_report,
    print_policy_card_summary,
    write_json_report,
)

app = typer.Typer(
    name="policycard",
    help="Evaluate capabilities against policy cards with a verifiable audit trail.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@dataclass(frozen=True)
class CapabilityRecord:
    """One capability read from a capabilities file."""

    name: str
    metadata: dict[str, Any]
    context: dict[str, Any] | None = None


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]policycard[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Log level for diagnostics written to stderr.",
            envvar="POLICYCARD_LOG_LEVEL",
        ),
    ] = DEFAULT_LOG_LEVEL,
) -> None:
    """
    policycard - Policy card evaluation and audit engine.
    """
    try:
        configure_logging(log_level)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)


# =============================================================================
# Input helpers
# =============================================================================


def _read_structured(path: Path) -> Any:
    """Read a YAML or JSON file (JSON is valid YAML)."""
    with path.open("rb") as f:
        return yaml.safe_load(f)


def load_capability_records(path: Path, namespace: str | None = None) -> list[CapabilityRecord]:
    """
    Read capabilities to audit.

    The file holds a list (or a ``tools`` key with a list) of entries:

        - name: eu_payment_processor
          compliance: {...}            # metadata given directly
          context: {amount: 500}       # optional escalation context
        - name: srv_document_scanner
          description: "... [PEC_COMPLIANCE:{...}]"   # embedded metadata

    Raises:
        ValueError: If the file does not have this shape
    """
    data = _read_structured(path)
    if isinstance(data, dict):
        data = data.get("tools")
    if not isinstance(data, list):
        raise ValueError("Capabilities file must be a list of entries or have a 'tools' list")

    prefix = f"{namespace}_" if namespace else ""
    records: list[CapabilityRecord] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise ValueError(f"Entry {index} must be a mapping with a 'name'")

        name = entry["name"]
        if prefix and name.startswith(prefix):
            name = name[len(prefix):]

        if "compliance" in entry:
            metadata = entry["compliance"]
        else:
            metadata = extract_compliance_metadata(entry.get("description", ""), name, strict=True)
        if not isinstance(metadata, dict):
            raise ValueError(f"Entry {index} ({name}) has no compliance metadata")

        context = entry.get("context")
        if context is not None and not isinstance(context, dict):
            raise ValueError(f"Entry {index} ({name}) has a non-mapping context")

        records.append(CapabilityRecord(name=name, metadata=metadata, context=context))
    return records


def _output_json_error(error_type: str, message: str, include_traceback: bool = False) -> None:
    """Print an error as JSON."""
    output: dict[str, Any] = {"error": error_type, "message": message}
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2))


# =============================================================================
# Commands
# =============================================================================


@app.command()
def validate(
    policy_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the policy card YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
) -> None:
    """
    Validate a policy card.

    Lists every problem found, not just the first.

    Example:
        $ policycard validate retail-banking.yaml
    """
    result = parse_policy_card(policy_path.read_bytes())

    if json_output:
        output = {
            "valid": result.success,
            "errors": [{"location": e.location, "message": e.message} for e in result.errors],
        }
        if result.policy_card is not None:
            output["name"] = result.policy_card.name
            output["rules"] = len(result.policy_card.rules)
        print(json.dumps(output, indent=2))
    elif result.success:
        console.print(f"[green]✓[/green] Policy card is valid: {policy_path.name}")
        print_policy_card_summary(result.unwrap(), console=console)
    else:
        console.print(f"[red]✗ Policy card is invalid ({len(result.errors)} issue(s)):[/red]")
        for issue in result.errors:
            console.print(f"  [red]•[/red] {escape(str(issue))}")

    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def audit(
    policy_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the policy card YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    capabilities_path: Annotated[
        Path,
        typer.Argument(
            help="YAML or JSON file listing capabilities and their compliance metadata.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--out",
            "-o",
            help="Write the JSON report to this path.",
            resolve_path=True,
        ),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: console or json."),
    ] = "console",
    namespace: Annotated[
        Optional[str],
        typer.Option("--namespace", help="Server namespace prefix to strip from tool names."),
    ] = None,
    audit_id: Annotated[
        Optional[str],
        typer.Option("--audit-id", help="Use this audit id instead of generating one."),
    ] = None,
    fail_on_reject: Annotated[
        bool,
        typer.Option("--fail-on-reject", help="Exit with code 1 if any capability is rejected."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="List every evaluation, not only findings."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug mode with full error tracebacks."),
    ] = False,
) -> None:
    """
    Evaluate capabilities against a policy card and produce an audit report.

    Example:
        $ policycard audit retail-banking.yaml tools.yaml --out report.json
    """
    json_output = format == "json"

    result = parse_policy_card(policy_path.read_bytes())
    if not result.success:
        message = "; ".join(str(issue) for issue in result.errors)
        if json_output:
            _output_json_error("policy_card_invalid", message)
        else:
            console.print(f"[red]Invalid policy card:[/red] {escape(message)}")
        raise typer.Exit(code=1)
    policy_card = result.unwrap()

    try:
        records = load_capability_records(capabilities_path, namespace=namespace)
    except Exception as e:
        if json_output:
            _output_json_error("capabilities_load_error", str(e), debug)
        else:
            console.print(f"[red]Error loading capabilities: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)

    auditor = PolicyCardAuditor(policy_card, audit_id=audit_id)
    for record in records:
        auditor.evaluate_and_record(record.name, record.metadata, context=record.context)
    report = auditor.generate_report()

    if output is not None:
        write_json_report(report, output)

    if json_output:
        print(generate_json_report(report))
    else:
        print_console_report(report, console=console, verbose=verbose)
        if output is not None:
            console.print(f"\n  [dim]Report saved:[/dim] {output}")

    if fail_on_reject and report.summary.rejected:
        raise typer.Exit(code=1)


@app.command()
def verify(
    report_path: Annotated[
        Path,
        typer.Argument(
            help="Path to a JSON audit report.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
) -> None:
    """
    Verify the evidence hash of a saved report.

    Example:
        $ policycard verify report.json
    """
    try:
        report = load_json_report(report_path.read_bytes())
    except ValidationError as e:
        console.print(f"[red]Not a valid audit report: {e.error_count()} error(s)[/red]")
        raise typer.Exit(code=1)

    if verify_report(report):
        console.print(f"[green]✓[/green] Evidence hash verified: {report.evidence_hash}")
        return

    console.print(
        f"[red]✗ Evidence hash mismatch for audit {report.audit_id}: "
        f"the evidence was altered after the report was generated[/red]"
    )
    raise typer.Exit(code=1)


if __name__ == "__main__":
    sys.exit(app())
