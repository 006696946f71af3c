import click

from koharu.cli.ensure import Ensure
from koharu.cli.rendering import ClickUpdatePresenter
from koharu.core.context import KoharuContext, with_dry_run
from koharu.core.update.machine import exit_code
from koharu.core.update.runner import run_update
from koharu.core.update.types import UpdateOptions


@click.command("update")
@click.option("--check", "check_only", is_flag=True, help="Only check for updates.")
@click.option("--skip-backup", is_flag=True, help="Do not offer a backup before merging.")
@click.option(
    "--force", "-f", is_flag=True, help="Skip the clean tree check and all confirmations."
)
@click.option("--tag", "target_tag", metavar="VERSION", help="Update to a specific version.")
@click.option("--rebase", is_flag=True, help="Rebase local commits onto upstream.")
@click.option(
    "--clean",
    is_flag=True,
    help="Replace all theme files, then restore user content from a backup.",
)
@click.option("--dry-run", is_flag=True, help="Show what would happen without changing anything.")
@click.pass_obj
def update_cmd(
    ctx: KoharuContext,
    check_only: bool,
    skip_backup: bool,
    force: bool,
    target_tag: str | None,
    rebase: bool,
    clean: bool,
    dry_run: bool,
) -> None:
    """Update the theme from the upstream template.

    By default upstream changes are merged. --rebase replays your commits on
    top of upstream instead (rewriting history); --clean replaces every theme
    file and restores your content afterwards. Both take a backup first.
    """
    if rebase and clean:
        raise click.UsageError("--rebase and --clean cannot be used together")

    Ensure.in_repository(ctx)
    options = UpdateOptions(
        check_only=check_only,
        skip_backup=skip_backup,
        force=force,
        target_tag=target_tag,
        rebase=rebase,
        dry_run=dry_run,
        clean=clean,
    )
    if dry_run:
        ctx = with_dry_run(ctx)

    final_state = run_update(ctx, options, ClickUpdatePresenter())
    raise SystemExit(exit_code(final_state))
