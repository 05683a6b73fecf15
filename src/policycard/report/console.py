"""
Console report rendering for policycard.

Renders an AuditReport to the terminal using Rich: a header panel, the
summary counts, KPI bands with status icons, rejected and warned
capabilities, assurance coverage and the evidence hash.
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from policycard.schema import AuditReport, KpiResult, KpiStatus, PolicyCard


# Status icons
ICON_PASS = "[green]✓[/green]"
ICON_WARN = "[yellow]⚠[/yellow]"
ICON_FAIL = "[red]✗[/red]"

KPI_ICONS = {
    KpiStatus.PASS: ICON_PASS,
    KpiStatus.WARN: ICON_WARN,
    KpiStatus.FAIL: ICON_FAIL,
    KpiStatus.CRITICAL: ICON_FAIL,
}

KPI_STYLES = {
    KpiStatus.PASS: "green",
    KpiStatus.WARN: "yellow",
    KpiStatus.FAIL: "red",
    KpiStatus.CRITICAL: "bold red",
}


def print_console_report(
    report: AuditReport,
    console: Console | None = None,
    verbose: bool = False,
) -> None:
    """
    Print an audit report.

    Args:
        report: The report to print
        console: Rich Console instance (creates one if not provided)
        verbose: Also list every evidence entry
    """
    if console is None:
        console = Console()

    _print_header(console, report)
    console.print()
    _print_summary(console, report)

    if report.kpi_results:
        console.print()
        _print_kpis(console, report.kpi_results)

    console.print()
    _print_findings(console, report, verbose)

    if report.assurance_coverage:
        console.print()
        console.print("[bold]Assurance coverage[/bold]")
        for framework, controls in report.assurance_coverage.items():
            console.print(f"  {escape(framework)}: {escape(', '.join(controls)) or '[dim]none[/dim]'}")

    console.print()
    console.print(f"  [dim]Evidence hash:[/dim] {report.evidence_hash}")


def _print_header(console: Console, report: AuditReport) -> None:
    header = Text()
    header.append(" Audit ", style="bold")
    header.append(report.audit_id, style="bold cyan")
    header.append(" │ ", style="dim")
    header.append(report.policy_name, style="bold")
    console.print(Panel(header, expand=False))

    console.print(
        f"  [dim]Period:[/dim] {report.period_start.strftime('%Y-%m-%d %H:%M:%S')}"
        f" → {report.period_end.strftime('%Y-%m-%d %H:%M:%S')}"
    )


def _print_summary(console: Console, report: AuditReport) -> None:
    summary = report.summary
    table = Table(show_header=True, header_style="bold", title="Summary", title_justify="left")
    table.add_column("Total", justify="right")
    table.add_column("Compliant", justify="right", style="green")
    table.add_column("Rejected", justify="right", style="red")
    table.add_column("Warned", justify="right", style="yellow")
    table.add_column("Escalated", justify="right", style="magenta")
    table.add_row(
        str(summary.total),
        str(summary.compliant),
        str(summary.rejected),
        str(summary.warned),
        str(summary.escalated),
    )
    console.print(table)


def _format_rate(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value * 100:.1f}%"


def _print_kpis(console: Console, kpi_results: list[KpiResult]) -> None:
    table = Table(show_header=True, header_style="bold", title="KPIs", title_justify="left")
    table.add_column("", width=2)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Critical", justify="right")
    table.add_column("Status")

    for kpi in kpi_results:
        style = KPI_STYLES[kpi.status]
        status = f"[{style}]{kpi.status.value.upper()}[/{style}]"
        if kpi.note:
            status += f" [dim]({kpi.note})[/dim]"
        table.add_row(
            KPI_ICONS[kpi.status],
            escape(kpi.metric),
            _format_rate(kpi.value),
            _format_rate(kpi.target),
            _format_rate(kpi.critical_threshold),
            status,
        )
    console.print(table)


def _print_findings(console: Console, report: AuditReport, verbose: bool) -> None:
    if not report.evidence:
        console.print("[dim]No evaluations recorded.[/dim]")
        return

    for evidence in report.evidence:
        evaluation = evidence.evaluation
        if evaluation.compliant and not evaluation.warnings and not verbose:
            continue

        icon = ICON_PASS if evaluation.compliant else ICON_FAIL
        console.print(f"  {icon} [bold]#{evidence.sequence}[/bold] {escape(evidence.capability_name)}")
        for violation in evaluation.violations:
            console.print(f"      [red]→[/red] {escape(violation.reason)} [dim]({escape(violation.rule_id)})[/dim]")
        for warning in evaluation.warnings:
            console.print(f"      {ICON_WARN} {escape(warning.reason)} [dim]({escape(warning.rule_id)})[/dim]")
        if verbose:
            console.print(f"      [dim]metadata {evidence.metadata_hash}[/dim]")


def print_policy_card_summary(policy_card: PolicyCard, console: Console | None = None) -> None:
    """Print an overview of a loaded policy card."""
    if console is None:
        console = Console()

    scope = policy_card.scope
    console.print(f"[bold]{escape(policy_card.name)}[/bold] [dim](version {escape(policy_card.policy_card_version)})[/dim]")
    console.print(f"  [dim]Risk level:[/dim] {escape(scope.ai_act_risk_level or 'unspecified')}")
    console.print(f"  [dim]Geography:[/dim] {escape(', '.join(scope.geography) or 'unspecified')}")
    console.print(f"  [dim]Intended uses:[/dim] {escape(', '.join(scope.intended_uses) or 'unspecified')}")

    table = Table(show_header=True, header_style="bold", title="Rules", title_justify="left")
    table.add_column("ID", style="cyan")
    table.add_column("Effect")
    table.add_column("Condition")
    table.add_column("Reason")
    for rule in policy_card.rules:
        effect = "[red]deny[/red]" if rule.effect.value == "deny" else "[yellow]warn[/yellow]"
        condition = rule.condition
        operand = "" if condition.operand is None else f" {condition.operand!r}"
        table.add_row(
            escape(rule.id),
            effect,
            escape(f"{condition.field} {condition.operator.value}{operand}"),
            escape(rule.reason),
        )
    console.print(table)

    for trigger in policy_card.triggers:
        marker = "" if trigger.expression is not None else " [red](unparseable)[/red]"
        console.print(f"  [dim]Escalation:[/dim] {escape(trigger.condition)} → {escape(trigger.action)}{marker}")
    for detector in policy_card.monitoring.detectors:
        console.print(
            f"  [dim]Detector:[/dim] {escape(detector.name)} "
            f"(threshold {escape(repr(detector.threshold))}) → {escape(detector.action or 'none')}"
        )
