"""bpl run command - replay structured commands against a tree."""

import json
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from branchplane.commands import Command, execute_all
from branchplane.core.errors import TreeError
from branchplane.git import CommandEngine
from branchplane.tree import default_tree, export_tree, load_tree, parse_tree


def _read_commands(path: Path) -> list[Command]:
    """Commands file is a YAML (or JSON) list of command objects."""
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise click.ClickException(f"Failed to parse {path}: {e}") from e
    if not isinstance(raw, list):
        raise click.ClickException(f"{path} must contain a list of commands")
    try:
        return [Command.model_validate(item) for item in raw]
    except ValidationError as e:
        raise click.ClickException(f"Invalid command in {path}: {e}") from e


@click.command()
@click.argument("tree_file")
@click.argument("commands_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the final tree here instead of stdout",
)
@click.pass_context
def run_command(ctx: click.Context, tree_file: str, commands_file: Path, out: Path | None) -> None:
    """Execute COMMANDS_FILE against TREE_FILE and print the final tree.

    TREE_FILE is a canonical tree JSON file, or "default" for the default tree.
    """
    config = ctx.obj["config"]
    engine = CommandEngine(config=config.engine)
    try:
        if tree_file == "default":
            tree = default_tree()
        else:
            tree = parse_tree(Path(tree_file).read_text())
        load_tree(engine, tree)
    except OSError as e:
        raise click.ClickException(f"Cannot read tree file: {e}") from e
    except TreeError as e:
        raise click.ClickException(e.message) from e

    for outcome in execute_all(engine, _read_commands(commands_file)):
        click.echo(json.dumps(outcome.to_dict()))

    final = json.dumps(export_tree(engine.graph).to_json_dict(), indent=2)
    if out is not None:
        out.write_text(final + "\n")
        click.echo(f"Final tree written to {out}")
    else:
        click.echo(final)
