import click

from koharu.cli.ensure import Ensure
from koharu.cli.output import machine_output, user_output
from koharu.core.config import CONFIG_KEYS, ConfigKeyError, config_path, save_config
from koharu.core.context import KoharuContext


@click.group("config")
def config_group() -> None:
    """Manage koharu configuration."""


@config_group.command("list")
@click.pass_obj
def config_list(ctx: KoharuContext) -> None:
    """Print a list of configuration keys and values."""
    if ctx.repo_root is not None and config_path(ctx.repo_root).exists():
        user_output(click.style(f"Configuration ({config_path(ctx.repo_root)}):", bold=True))
    else:
        user_output(click.style("Configuration (defaults):", bold=True))
    for key in CONFIG_KEYS:
        machine_output(f"{key}={ctx.config.get(key)}")


@config_group.command("get")
@click.argument("key", metavar="KEY")
@click.pass_obj
def config_get(ctx: KoharuContext, key: str) -> None:
    """Print the value of a given configuration key."""
    try:
        value = ctx.config.get(key)
    except ConfigKeyError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from e
    machine_output(value)


@config_group.command("set")
@click.argument("key", metavar="KEY")
@click.argument("value", metavar="VALUE")
@click.pass_obj
def config_set(ctx: KoharuContext, key: str, value: str) -> None:
    """Update configuration with a value for the given key."""
    repo_root = Ensure.in_repository(ctx)
    try:
        updated = ctx.config.with_value(key, value)
    except (ConfigKeyError, ValueError) as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from e

    save_config(repo_root, updated)
    user_output(f"Set {key}={updated.get(key)}")
