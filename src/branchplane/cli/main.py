"""BranchPlane CLI - bpl command."""

import click

from branchplane.cli.compare import compare_command
from branchplane.cli.run import run_command
from branchplane.config import load_config
from branchplane.core.errors import ConfigError
from branchplane.core.logging import configure_logging
from branchplane.tree import default_tree, print_tree


@click.group()
@click.version_option(version="0.1.0", prog_name="bpl")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """BranchPlane - commit graph simulator with git and hg dialects."""
    ctx.ensure_object(dict)
    try:
        config = load_config()
    except ConfigError as e:
        raise click.ClickException(e.message) from e
    if verbose:
        config.logging.level = "DEBUG"
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config
    configure_logging(config=config.logging)


@click.command()
def default_tree_command() -> None:
    """Print the default starting tree."""
    click.echo(print_tree(default_tree()))


cli.add_command(run_command, name="run")
cli.add_command(compare_command, name="compare")
cli.add_command(default_tree_command, name="default-tree")


if __name__ == "__main__":
    cli()
