"""Rich terminal formatting for north output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from north.core.models import (
    MigrateReport,
    MigrationPlan,
    MigrationStep,
    Severity,
    StepStatus,
    describe_action,
)

console = Console()
error_console = Console(stderr=True)

PREVIEW_LIMIT = 10
RESULT_LIMIT = 20

SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARN: "yellow",
    Severity.INFO: "blue",
}

STATUS_LABELS = {
    StepStatus.APPLIED: "[green]ok[/green]",
    StepStatus.SKIPPED: "[yellow]skip[/yellow]",
    StepStatus.FAILED: "[red]FAIL[/red]",
    StepStatus.PENDING: "[dim]...[/dim]",
}


def confidence_color(score: float) -> str:
    if score >= 0.9:
        return "green"
    elif score >= 0.7:
        return "yellow"
    return "red"


def confidence_bar(score: float, width: int = 12) -> str:
    filled = round(score * width)
    color = confidence_color(score)
    return f"[{color}]{'█' * filled}{'░' * (width - filled)}[/{color}]"


def print_plan_summary(plan: MigrationPlan, plan_path: str, source: str, written: bool) -> None:
    """Print the result of ``north propose``."""
    summary = plan.summary
    source_label = "lint check (ran fresh)" if source == "check" else source
    pct = (
        round(summary.addressable_violations / summary.total_violations * 100)
        if summary.total_violations
        else 0
    )

    lines = []
    lines.append("")
    lines.append(f"  Strategy: [bold]{plan.strategy.value}[/bold]")
    lines.append(f"  Source:   {source_label}")
    lines.append("")
    lines.append(f"  Total violations: {summary.total_violations}")
    lines.append(f"  Addressable:      {summary.addressable_violations} ({pct}%)")
    lines.append(f"  Files affected:   {summary.files_affected}")

    if summary.by_rule:
        lines.append("")
        lines.append("  [bold]By rule[/bold]")
        for rule, count in sorted(summary.by_rule.items(), key=lambda kv: -kv[1]):
            lines.append(f"    {rule}: {count}")

    lines.append("")
    lines.append("  [bold]By severity[/bold]")
    for severity in Severity:
        color = SEVERITY_COLORS[severity]
        lines.append(f"    [{color}]{severity.value}[/{color}]: {summary.by_severity.get(severity.value, 0)}")

    lines.append("")
    if written:
        lines.append(f"  Plan written to: {plan_path}")
        lines.append("")
        lines.append("  Next steps:")
        lines.append("    1. Preview changes: [bold]north migrate[/bold]")
        lines.append("    2. Apply changes:   [bold]north migrate --apply[/bold]")
    else:
        lines.append("  [dim]Dry run: plan not written.[/dim]")
    lines.append("")

    console.print(Panel(
        "\n".join(lines),
        title="[bold]Migration Plan Generated[/bold]",
        border_style="cyan",
        padding=(0, 1),
    ))


def print_dry_run(report: MigrateReport, plan_total: int, steps: list[MigrationStep]) -> None:
    """Print a preview of what ``north migrate --apply`` would do."""
    lines = []
    lines.append("")
    lines.append(f"  Plan:  {report.plan_path}")
    lines.append(f"  Steps: {plan_total} total, {len(steps)} will execute")
    lines.append("")

    for step in steps[:PREVIEW_LIMIT]:
        lines.append(f"  [bold]{step.id}[/bold] [dim]\\[PREVIEW][/dim]")
        lines.append(f"    File:   {escape(step.file)}:{step.line}")
        lines.append(f"    Rule:   {step.rule_key}")
        lines.append(f"    Action: {escape(describe_action(step.action))}")
        lines.append("")

    if len(steps) > PREVIEW_LIMIT:
        lines.append(f"  [dim]... ({len(steps) - PREVIEW_LIMIT} more steps)[/dim]")
        lines.append("")

    lines.append(f"  Steps: {report.summary.total}  Files: {report.summary.files_changed}")
    lines.append("")
    lines.append("  Run [bold]north migrate --apply[/bold] to execute.")
    lines.append("")

    console.print(Panel(
        "\n".join(lines),
        title="[bold]Migration Preview (dry-run)[/bold]",
        border_style="blue",
        padding=(0, 1),
    ))


def print_step_prompt(step: MigrationStep, target: Console | None = None) -> None:
    """Show one step's before/after ahead of an interactive confirmation."""
    out = target or console
    color = confidence_color(step.confidence)

    lines = []
    lines.append(f"  {escape(step.file)}:{step.line}")
    lines.append(f"  Confidence: {confidence_bar(step.confidence)} {step.confidence:.2f}")
    lines.append("")
    lines.append("  [dim]Before:[/dim]")
    lines.append(f"  [red]- {escape(step.preview.before)}[/red]")
    lines.append("  [dim]After:[/dim]")
    lines.append(f"  [green]+ {escape(step.preview.after)}[/green]")

    out.print(Panel(
        "\n".join(lines),
        title=f"[bold]Step {step.id}: {escape(describe_action(step.action))}[/bold]",
        border_style=color,
        padding=(0, 1),
    ))


def print_migrate_report(report: MigrateReport, show_all: bool = False) -> None:
    """Print the outcome of an applied migration."""
    summary = report.summary
    results = report.results if show_all else report.results[:RESULT_LIMIT]

    lines = []
    lines.append("")
    lines.append(f"  Plan: {report.plan_path}")
    lines.append("")
    for result in results:
        label = STATUS_LABELS[result.status]
        name = result.file.rsplit("/", 1)[-1]
        line = f"  {label} {result.step_id}: {escape(name)} - {escape(result.action)}"
        if result.error:
            line += f"  [dim]({escape(result.error)})[/dim]"
        lines.append(line)

    if not show_all and len(report.results) > RESULT_LIMIT:
        lines.append(f"  [dim]... ({len(report.results) - RESULT_LIMIT} more results)[/dim]")

    failed = f"[red]{summary.failed}[/red]" if summary.failed else "0"
    skipped = f"[yellow]{summary.skipped}[/yellow]" if summary.skipped else "0"

    lines.append("")
    lines.append(f"  Total: {summary.total}")
    lines.append(f"  Applied: [green]{summary.applied}[/green]")
    lines.append(f"  Failed: {failed}")
    lines.append(f"  Skipped: {skipped}")
    lines.append(f"  Files changed: {summary.files_changed}")
    lines.append(
        f"  Lines: [red]-{summary.lines_removed}[/red], [green]+{summary.lines_added}[/green]"
    )

    for warning in report.warnings:
        lines.append(f"  [yellow]Warning: {escape(warning)}[/yellow]")

    if report.checkpoint is not None:
        lines.append("")
        lines.append(f"  [dim]Checkpoint saved: {report.checkpoint_path}[/dim]")

    if report.next_steps:
        lines.append("")
        lines.append("  [bold]Next steps:[/bold]")
        for i, step in enumerate(report.next_steps, start=1):
            lines.append(f"    {i}. {step}")
    lines.append("")

    console.print(Panel(
        "\n".join(lines),
        title="[bold]Migration Applied[/bold]",
        border_style="red" if summary.failed else "green",
        padding=(0, 1),
    ))


def print_promotion(name: str, pattern: str, utility_block: str, applied: bool, css_path: str) -> None:
    console.print(f"\n  [bold]Promote: {escape(name)}[/bold]")
    console.print(f"  [dim]Pattern: {escape(pattern)}[/dim]\n")
    console.print("  [dim]Suggested @utility:[/dim]")
    for line in utility_block.splitlines():
        console.print(f"  {line}", markup=False)
    if applied:
        console.print(f"\n  [green]Applied promotion to {escape(css_path)}[/green]\n")
    else:
        console.print("\n  [dim]Dry run only. Use --apply to write the stylesheet.[/dim]\n")
