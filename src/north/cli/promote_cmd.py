"""north promote command."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.markup import escape

from north.core.config import load_config, resolve_paths
from north.core.errors import NorthError
from north.core.output import error_console, print_promotion
from north.migrate.promote import promote_utility


@click.command()
@click.argument("pattern")
@click.option("--as", "name", required=True, help="Name of the new @utility")
@click.option("--apply", is_flag=True, help="Append the utility to the shared stylesheet")
@click.option("--dry-run", is_flag=True, help="Show the utility without writing it (the default)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def promote(pattern: str, name: str, apply: bool, dry_run: bool, as_json: bool):
    """Promote a class PATTERN to a named @utility.

    Example: north promote "flex items-center gap-2" --as cluster --apply
    """
    if apply and dry_run:
        error_console.print("\n  [red]Use either --apply or --dry-run, not both.[/red]\n")
        sys.exit(1)

    project_path = Path.cwd()
    try:
        config = load_config(project_path)
        paths = resolve_paths(project_path, config)
        result = promote_utility(paths.base_css_path, name, pattern, apply=apply)
    except NorthError as e:
        error_console.print(f"\n  [red]Promotion failed: {escape(e.message)}[/red]\n")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    print_promotion(result.name, result.pattern, result.utility_block, result.applied, result.css_path)
