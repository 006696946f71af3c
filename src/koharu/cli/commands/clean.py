import click

from koharu.cli.output import format_size, user_output
from koharu.core.context import KoharuContext


@click.command("clean")
@click.option(
    "--keep",
    type=click.IntRange(min=0),
    required=True,
    metavar="N",
    help="Number of most recent backups to keep.",
)
@click.option("--force", "-f", is_flag=True, help="Delete without asking for confirmation.")
@click.pass_obj
def clean_cmd(ctx: KoharuContext, keep: int, force: bool) -> None:
    """Delete old backups, keeping the N most recent."""
    backups = ctx.backups.list_backups()
    doomed = backups[keep:]
    if not doomed:
        user_output(f"Nothing to clean: {len(backups)} backup(s), keeping {keep}.")
        return

    user_output(click.style(f"Will delete {len(doomed)} backup(s):", bold=True))
    for info in doomed:
        user_output(f"  - {info.name}" + click.style(f" ({format_size(info.size)})", dim=True))

    if not force and not click.confirm("Delete these backups?", default=False, err=True):
        user_output(click.style("Clean cancelled.", dim=True))
        return

    result = ctx.backups.delete_backups([info.path for info in doomed])
    user_output(
        click.style(f"Deleted {result.deleted_count} backup(s)", fg="green", bold=True)
        + f", freed {format_size(result.freed_space)}"
    )
    if result.skipped_count:
        user_output(click.style(f"Skipped {result.skipped_count} backup(s)", fg="yellow"))
