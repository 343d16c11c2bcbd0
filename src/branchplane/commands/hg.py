"""Secondary dialect: Mercurial commands expressed as git delegations.

A handler either executes directly or rewrites the invocation and returns
the git command(s) to run with it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from branchplane.commands.models import Delegation, Invocation
from branchplane.commands.registry import CommandTable
from branchplane.git.errors import GitError, StateError

if TYPE_CHECKING:
    from branchplane.git.engine import CommandEngine

hg_commands = CommandTable("hg")


@hg_commands.register("commit", options=("--amend", "-A", "-m"), aliases=("ci",))
def commit(engine: CommandEngine, inv: Invocation) -> Delegation:
    if inv.has("-A"):
        engine.graph.warn("hg-a-option")
    return Delegation("commit")


@hg_commands.register("status", aliases=("st",))
def status(engine: CommandEngine, inv: Invocation) -> None:
    raise StateError(engine.messages.render("hg-error-no-status"))


@hg_commands.register("export")
def export(engine: CommandEngine, inv: Invocation) -> Delegation:
    inv.map_dot_to_head()
    return Delegation("show")


@hg_commands.register("graft", options=("-r",))
def graft(engine: CommandEngine, inv: Invocation) -> Delegation:
    inv.accept_no_general_args(engine.messages.render("git-error-no-general-args"))
    inv.prepend_option_r()
    return Delegation("cherry-pick")


@hg_commands.register("log", options=("-f",))
def log_(engine: CommandEngine, inv: Invocation) -> Delegation:
    inv.accept_no_general_args(engine.messages.render("git-error-no-general-args"))
    if not inv.has("-f"):
        raise GitError(engine.messages.render("hg-error-log-no-follow"))
    inv.map_dot_to_head()
    return Delegation("log")


@hg_commands.register("bookmark", options=("-r", "-f", "-d"), aliases=("bookmarks", "book"))
def bookmark(engine: CommandEngine, inv: Invocation) -> Delegation:
    if inv.has("-d") and inv.has("-r"):
        raise GitError("-r is incompatible with -d")

    if not inv.args and not inv.values("-r") and not inv.values("-d"):
        return Delegation("branch")
    if inv.has("-d"):
        inv.options["-D"] = inv.options.pop("-d")
        return Delegation("branch")
    if inv.has("-r"):
        name = inv.args[0] if inv.args else ""
        inv.args = [name, inv.values("-r")[0]]
        return Delegation("branch")
    if inv.args:
        return Delegation("checkout", args=[], options={"-b": [inv.args[0]]})
    return Delegation("branch")


@hg_commands.register("rebase", options=("-d", "-s", "-b"))
def rebase(engine: CommandEngine, inv: Invocation) -> None:
    inv.options.setdefault("-b", ["."])
    inv.map_dot_to_head()
    destination = inv.values("-d")
    if not destination:
        raise GitError(engine.messages.render("git-error-options"))
    engine.hg_rebase(destination[0], inv.values("-b")[0])


@hg_commands.register("update", options=("-r",), aliases=("up",))
def update(engine: CommandEngine, inv: Invocation) -> Delegation:
    inv.append_option_r()
    return Delegation("checkout")


@hg_commands.register("backout", options=("-r",))
def backout(engine: CommandEngine, inv: Invocation) -> Delegation:
    inv.prepend_option_r()
    return Delegation("revert")


@hg_commands.register("histedit")
def histedit(engine: CommandEngine, inv: Invocation) -> Delegation:
    inv.validate_arg_bounds(inv.args, 1, 1)
    return Delegation("rebase", args=[], options={"-i": list(inv.args)})


@hg_commands.register("pull")
def pull(engine: CommandEngine, inv: Invocation) -> Delegation:
    return Delegation("pull")


@hg_commands.register("summary", aliases=("sum",))
def summary(engine: CommandEngine, inv: Invocation) -> Delegation:
    return Delegation("branch")
