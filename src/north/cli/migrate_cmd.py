"""north migrate command."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.markup import escape

from north.core.config import load_config, resolve_paths
from north.core.errors import NorthError
from north.core.output import console, error_console, print_dry_run, print_migrate_report
from north.core.safe_mode import resolve_safe_mode
from north.migrate.executor import MigrateOptions, MigrationExecutor
from north.migrate.state import load_plan


@click.command()
@click.option("--plan", "plan_path", type=click.Path(path_type=Path), help="Plan file to execute")
@click.option("--steps", multiple=True, help="Only run this step id (repeatable)")
@click.option("--skip", multiple=True, help="Skip this step id (repeatable)")
@click.option("--file", "file_filter", help="Only run steps for this file")
@click.option("--interactive", "-i", is_flag=True, help="Confirm each step")
@click.option("--no-backup", is_flag=True, help="Do not write .bak copies")
@click.option("--dry-run", is_flag=True, help="Preview only (the default)")
@click.option("--apply", is_flag=True, help="Write changes to disk")
@click.option("--continue", "resume", is_flag=True, help="Resume from the last checkpoint")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.option("--quiet", "-q", is_flag=True, help="Suppress output")
def migrate(
    plan_path: Path | None,
    steps: tuple[str, ...],
    skip: tuple[str, ...],
    file_filter: str | None,
    interactive: bool,
    no_backup: bool,
    dry_run: bool,
    apply: bool,
    resume: bool,
    as_json: bool,
    quiet: bool,
):
    """Execute a migration plan.

    Without --apply only a preview is shown. Use --continue after a failed or
    interrupted run to pick up where it stopped.
    """
    project_path = Path.cwd()
    mode = resolve_safe_mode(apply=apply or None, dry_run=dry_run or None, context="cli")

    try:
        config = load_config(project_path)
        paths = resolve_paths(project_path, config)

        options = MigrateOptions(
            plan_path=plan_path,
            steps=list(steps) or None,
            skip=list(skip) or None,
            file=file_filter,
            interactive=interactive or config.migrate.interactive,
            backup=config.migrate.backup and not no_backup,
            apply=mode.should_apply,
            resume=resume,
        )
        executor = MigrationExecutor(project_path, paths)
        report = executor.run(options)
    except NorthError as e:
        error_console.print(f"\n  [red]Migration failed: {escape(e.message)}[/red]\n")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    elif not quiet:
        if report.applied:
            print_migrate_report(report)
        elif report.results:
            plan = load_plan(Path(report.plan_path))
            by_id = {step.id: step for step in plan.steps}
            print_dry_run(report, len(plan.steps), [by_id[r.step_id] for r in report.results])
        else:
            for step in report.next_steps:
                console.print(f"\n  {step}\n")

    if report.summary.failed:
        sys.exit(1)
