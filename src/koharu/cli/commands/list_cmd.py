import click
from rich.console import Console
from rich.table import Table

from koharu.cli.output import format_size, user_output
from koharu.core.context import KoharuContext


@click.command("list")
@click.pass_obj
def list_cmd(ctx: KoharuContext) -> None:
    """List backup archives, newest first."""
    backups = ctx.backups.list_backups()
    if not backups:
        user_output(f"No backups found in {ctx.backup_dir}")
        user_output(click.style("Create one with: koharu backup", dim=True))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("name", style="cyan", no_wrap=True)
    table.add_column("type", no_wrap=True)
    table.add_column("size", justify="right", no_wrap=True)
    table.add_column("created", no_wrap=True)

    total = 0
    for info in backups:
        kind = info.backup_type
        if kind == "full":
            kind = f"[green]{kind}[/green]"
        table.add_row(info.name, kind, format_size(info.size), info.timestamp)
        total += info.size

    # Output table to stderr (consistent with user_output convention)
    console = Console(stderr=True, width=200)
    console.print(table)
    user_output(f"{len(backups)} backup(s), {format_size(total)} total")
