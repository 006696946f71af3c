import tarfile

import click

from koharu.cli.ensure import Ensure
from koharu.cli.output import format_size, machine_output, user_output
from koharu.core.context import KoharuContext


@click.command("backup")
@click.option(
    "--full",
    is_flag=True,
    help="Also back up generated assets (favicon, LQIP, similarity and summary data).",
)
@click.pass_obj
def backup_cmd(ctx: KoharuContext, full: bool) -> None:
    """Back up blog posts, site configuration and other user content.

    The archive path is printed to stdout.
    """
    user_output(click.style(f"Creating {'full' if full else 'basic'} backup...", fg="cyan"))
    try:
        output = ctx.backups.run_backup(full)
    except (OSError, tarfile.TarError) as e:
        user_output(click.style("Error: ", fg="red") + f"Backup failed: {e}")
        raise SystemExit(1) from e

    for result in output.results:
        label = result.item.label
        if result.skipped:
            user_output(click.style(f"  - {label} (not found, skipped)", dim=True))
        elif result.error is not None:
            user_output(click.style(f"  ✗ {label}: {result.error}", fg="red"))
        else:
            user_output(click.style(f"  + {label}", fg="green") + f" ({result.file_count} files)")

    Ensure.invariant(
        not output.failed,
        f"{len(output.failed)} item(s) could not be backed up; "
        f"the archive {output.backup_file.name} is incomplete.",
    )

    user_output()
    user_output(
        click.style("Backup complete: ", fg="green", bold=True)
        + f"{output.backup_file.name} ({format_size(output.file_size)})"
    )
    machine_output(str(output.backup_file))
