"""bpl compare command - check a tree against a goal."""

import sys
from pathlib import Path

import click

from branchplane.core.errors import TreeError
from branchplane.tree import ComparePolicy, TreeCompare

_POLICIES = click.Choice([p.value for p in ComparePolicy])


def _read(value: str) -> str:
    """Accept either a path to a tree file or inline tree text."""
    if value.lstrip().startswith(("{", "%7B", "%7b")):
        return value
    try:
        return Path(value).read_text()
    except OSError as e:
        raise click.ClickException(f"Cannot read tree file: {e}") from e


@click.command()
@click.argument("goal")
@click.argument("current")
@click.option("--policy", type=_POLICIES, default=ComparePolicy.ALL_BRANCHES_AND_HEAD.value)
@click.option("--origin-policy", type=_POLICIES, default=None, help="Policy for origin trees")
def compare_command(goal: str, current: str, policy: str, origin_policy: str | None) -> None:
    """Exit 0 if CURRENT satisfies GOAL, 1 otherwise.

    GOAL and CURRENT are tree files or inline tree JSON.
    """
    compare = TreeCompare(
        ComparePolicy(policy),
        origin_policy=ComparePolicy(origin_policy) if origin_policy else None,
    )
    try:
        matched = compare.matches(_read(goal), _read(current))
    except TreeError as e:
        raise click.ClickException(e.message) from e
    click.echo("match" if matched else "no match")
    sys.exit(0 if matched else 1)
