import tarfile
from pathlib import Path

import click

from koharu.cli.ensure import Ensure
from koharu.cli.output import format_size, user_output
from koharu.core.backup.types import BackupFormatError, BackupInfo
from koharu.core.context import KoharuContext, with_dry_run


def _resolve_backup_path(ctx: KoharuContext, backup_file: str) -> Path:
    """Accept a path, or the bare name of an archive in the backup directory."""
    candidate = Path(backup_file)
    if not candidate.is_absolute() and candidate.parent == Path("."):
        in_backup_dir = ctx.backup_dir / candidate
        if in_backup_dir.is_file():
            return in_backup_dir
    if not candidate.is_absolute():
        candidate = ctx.cwd / candidate
    return candidate


def _select_backup(backups: list[BackupInfo]) -> Path:
    user_output(click.style("Available backups:", bold=True))
    for index, info in enumerate(backups, start=1):
        user_output(
            f"  {index}. {info.name}"
            + click.style(f" ({info.backup_type}, {format_size(info.size)})", dim=True)
        )
    choice = click.prompt(
        "Select a backup to restore", type=click.IntRange(1, len(backups)), default=1, err=True
    )
    return backups[choice - 1].path


@click.command("restore")
@click.argument("backup_file", required=False, metavar="[BACKUP_FILE]")
@click.option("--latest", is_flag=True, help="Restore the most recent backup.")
@click.option("--dry-run", is_flag=True, help="Show what would be restored without writing.")
@click.option("--force", "-f", is_flag=True, help="Restore without asking for confirmation.")
@click.pass_obj
def restore_cmd(
    ctx: KoharuContext, backup_file: str | None, latest: bool, dry_run: bool, force: bool
) -> None:
    """Restore user content from a backup archive.

    Files in the archive overwrite their counterparts in the project; files
    that are not in the archive are left alone.
    """
    Ensure.invariant(
        not (backup_file and latest), "Pass either a backup file or --latest, not both"
    )

    if backup_file:
        path = _resolve_backup_path(ctx, backup_file)
        Ensure.file_exists(path, f"Backup file not found: {backup_file}")
    else:
        backups = ctx.backups.list_backups()
        Ensure.invariant(
            bool(backups), f"No backups found in {ctx.backup_dir}. Create one with: koharu backup"
        )
        path = backups[0].path if latest else _select_backup(backups)

    if dry_run:
        ctx = with_dry_run(ctx)

    try:
        manifest = ctx.backups.read_manifest(path)
        preview = ctx.backups.get_restore_preview(path)
    except (OSError, tarfile.TarError, BackupFormatError) as e:
        user_output(click.style("Error: ", fg="red") + f"Cannot read {path.name}: {e}")
        raise SystemExit(1) from e

    user_output(click.style("Backup: ", bold=True) + path.name)
    user_output(f"  Type: {manifest.backup_type}")
    user_output(f"  Theme version: {manifest.theme_version}")
    user_output(f"  Created: {manifest.created_at}")
    user_output()
    user_output(click.style("Will restore:", bold=True))
    for item in preview:
        user_output(f"  {item.path}" + click.style(f" ({item.file_count} files)", dim=True))

    if not dry_run and not force:
        user_output()
        user_output(
            click.style("Existing files at these paths will be overwritten.", fg="yellow")
        )
        if not click.confirm("Proceed with restore?", default=False, err=True):
            user_output(click.style("Restore cancelled.", dim=True))
            return

    try:
        restored = ctx.backups.restore_backup(path)
    except (OSError, tarfile.TarError, BackupFormatError) as e:
        user_output(click.style("Error: ", fg="red") + f"Restore failed: {e}")
        raise SystemExit(1) from e

    user_output()
    if dry_run:
        user_output(click.style("Dry run complete. No files were changed.", dim=True))
        return
    user_output(click.style("Restore complete", fg="green", bold=True))
    for restored_path in restored:
        user_output(click.style(f"  + {restored_path}", fg="green"))
    user_output()
    user_output(click.style("Next steps:", dim=True))
    user_output(click.style("  pnpm dev # Start development server to check the result", dim=True))
