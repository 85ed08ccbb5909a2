"""north propose command."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.markup import escape

from north.core.config import load_config, resolve_paths
from north.core.errors import NorthError
from north.core.models import Strategy
from north.core.output import console, error_console, print_plan_summary
from north.migrate.planner import ProposeOptions, propose as build_proposal


@click.command()
@click.option(
    "--from", "source", default="check", show_default=True,
    help="Violation source: 'check', 'stdin' or a path to check JSON output",
)
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Where to write the plan")
@click.option(
    "--strategy", type=click.Choice([s.value for s in Strategy]),
    help="Confidence/severity gate (default from north.toml, else balanced)",
)
@click.option("--include", multiple=True, help="Only plan fixes for this rule (repeatable)")
@click.option("--exclude", multiple=True, help="Never plan fixes for this rule (repeatable)")
@click.option("--max-changes", type=click.IntRange(min=0), help="Cap planned steps per file")
@click.option("--dry-run", is_flag=True, help="Build the plan but do not write it")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.option("--quiet", "-q", is_flag=True, help="Suppress output")
def propose(
    source: str,
    output: Path | None,
    strategy: str | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    max_changes: int | None,
    dry_run: bool,
    as_json: bool,
    quiet: bool,
):
    """Generate a migration plan from lint violations.

    Check output is usually piped in:

        north check --json | north propose --from stdin
    """
    project_path = Path.cwd()

    try:
        config = load_config(project_path)
        paths = resolve_paths(project_path, config)

        if max_changes is None:
            max_changes = config.propose.max_changes
        options = ProposeOptions(
            strategy=strategy or config.propose.strategy,
            include=list(include) or list(config.propose.include) or None,
            exclude=list(exclude) or list(config.propose.exclude) or None,
            max_changes=max_changes or None,
            source=source,
            output=output,
            dry_run=dry_run,
        )
        report = build_proposal(options, project_path=project_path, paths=paths)
    except NorthError as e:
        error_console.print(f"\n  [red]Propose failed: {escape(e.message)}[/red]\n")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if quiet:
        return

    print_plan_summary(report.plan, report.plan_path, report.source, report.written)
    if not report.plan.steps:
        console.print("  [yellow]No addressable violations for this strategy.[/yellow]\n")
