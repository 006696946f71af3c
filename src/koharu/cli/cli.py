import logging
import os

import click

from koharu.cli.commands.backup import backup_cmd
from koharu.cli.commands.clean import clean_cmd
from koharu.cli.commands.config import config_group
from koharu.cli.commands.list_cmd import list_cmd
from koharu.cli.commands.restore import restore_cmd
from koharu.cli.commands.update import update_cmd
from koharu.core.context import create_context

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


def _configure_logging() -> None:
    if os.environ.get("KOHARU_DEBUG"):
        logging.basicConfig(
            level=logging.DEBUG, format="[DEBUG %(name)s:%(lineno)d] %(message)s"
        )


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="koharu")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Keep an astro-koharu blog in sync with the upstream theme."""
    _configure_logging()
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context(dry_run=False)


cli.add_command(backup_cmd)
cli.add_command(clean_cmd)
cli.add_command(config_group)
cli.add_command(list_cmd)
cli.add_command(restore_cmd)
cli.add_command(update_cmd)


def main() -> None:
    """CLI entry point used by the `koharu` console script."""
    cli()
