"""Click CLI entry point for north."""

from __future__ import annotations

import logging

import click

from north._version import __version__


@click.group()
@click.version_option(version=__version__, prog_name="north")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """north - plan and apply fixes for design-system lint violations.

    Propose a migration plan from check output, review it, then apply it.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Import and register subcommands
from north.cli.propose_cmd import propose  # noqa: E402
from north.cli.migrate_cmd import migrate  # noqa: E402
from north.cli.promote_cmd import promote  # noqa: E402

cli.add_command(propose)
cli.add_command(migrate)
cli.add_command(promote)


if __name__ == "__main__":
    cli()
