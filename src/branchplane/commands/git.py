"""Primary dialect: one handler per git command.

Handlers parse and validate arguments, then call the engine. Read-only
commands raise ``NoOpResult`` carrying their display text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from branchplane.commands.models import Invocation
from branchplane.commands.registry import CommandTable
from branchplane.git._internal import (
    require_branch,
    require_not_checked_out,
    require_origin,
    require_ref,
    require_tracking_branch,
)
from branchplane.git.errors import GitError, NoOpResult, StateError
from branchplane.git.graph import CommitGraph, unescape
from branchplane.git.models import HEAD_ID, Branch, InteractiveRebasePlan

if TYPE_CHECKING:
    from branchplane.git.engine import CommandEngine

git_commands = CommandTable("git")


def _no_general_args(engine: CommandEngine, inv: Invocation) -> None:
    inv.accept_no_general_args(engine.messages.render("git-error-no-general-args"))


def _is_colon_refspec(value: str) -> bool:
    return value.count(":") == 1


def _assert_origin_specified(args: list[str]) -> None:
    if args and args[0] != "origin":
        raise GitError(
            f"{args[0]} is not a remote in your repository! try adding origin to that argument"
        )


def _validate_branch_name_if_needed(graph: CommitGraph, name: str) -> str:
    if name in graph:
        return name
    return graph.validate_branch_name(name)


def _short_circuit_text(engine: CommandEngine, kind: str) -> str | None:
    """Display text for a merge or rebase that only moved refs."""
    if kind == "fastforward":
        return engine.messages.render("git-result-fastforward")
    return None


# =============================================================================
# Commits
# =============================================================================


@git_commands.register("commit", options=("--amend", "-a", "--all", "-am", "-m"))
def commit(engine: CommandEngine, inv: Invocation) -> None:
    _no_general_args(engine, inv)
    if inv.has("-am") and inv.has("-a", "--all", "-m"):
        raise GitError(engine.messages.render("git-error-options"))
    if inv.has("-a", "--all"):
        engine.graph.warn("git-warning-add")

    message = None
    for option in ("-am", "-m"):
        if inv.has(option):
            values = inv.values(option)
            inv.validate_arg_bounds(values, 1, 1, option)
            message = values[0]
    if inv.has("--amend"):
        inv.validate_arg_bounds(inv.values("--amend"), 0, 0, "--amend")

    engine.commit(amend=inv.has("--amend"), message=message)


@git_commands.register("cherry-pick")
def cherry_pick(engine: CommandEngine, inv: Invocation) -> None:
    inv.validate_arg_bounds(inv.args, 1)
    engine.cherry_pick(inv.args)


@git_commands.register("revert")
def revert(engine: CommandEngine, inv: Invocation) -> None:
    inv.validate_arg_bounds(inv.args, 1)
    engine.revert(inv.args)


@git_commands.register("add")
def add(engine: CommandEngine, inv: Invocation) -> None:
    raise NoOpResult(engine.messages.render("git-error-staging"))


@git_commands.register("reset", options=("--hard", "--soft"))
def reset(engine: CommandEngine, inv: Invocation) -> None:
    if inv.has("--soft"):
        raise GitError(engine.messages.render("git-error-staging"))
    args = list(inv.args)
    if inv.has("--hard"):
        engine.graph.warn("git-warning-hard")
        args += inv.values("--hard")
    inv.validate_arg_bounds(args, 1, 1)
    engine.reset(args[0])


@git_commands.register("merge", options=("--no-ff",))
def merge(engine: CommandEngine, inv: Invocation) -> str | None:
    args = inv.args + inv.values("--no-ff")
    inv.validate_arg_bounds(args, 1, 1)
    result = engine.merge(args[0], no_ff=inv.has("--no-ff"))
    return _short_circuit_text(engine, result.kind)


@git_commands.register(
    "rebase",
    options=(
        "-i",
        "--solution-ordering",
        "--interactive-test",
        "--aboveAll",
        "-p",
        "--preserve-merges",
    ),
)
def rebase(engine: CommandEngine, inv: Invocation) -> InteractiveRebasePlan | str | None:
    if inv.has("-i"):
        args = inv.values("-i") + inv.args
        inv.two_args_implied_head(args, "-i")
        if inv.has("--interactive-test"):
            chosen = inv.values("--interactive-test")
            ordering = [c for c in chosen[0].split(",") if c] if chosen else []
            engine.interactive_rebase(args[0], args[1], ordering)
            return None
        solution = inv.values("--solution-ordering")
        initial = solution[0].split(",") if solution else None
        return engine.plan_interactive_rebase(args[0], args[1], initial)

    args = list(inv.args)
    inv.two_args_implied_head(args)
    result = engine.rebase(args[0], args[1], preserve_merges=inv.has("-p", "--preserve-merges"))
    return _short_circuit_text(engine, result.kind)


# =============================================================================
# Refs
# =============================================================================


@git_commands.register("checkout", options=("-b", "-B", "-"))
def checkout(engine: CommandEngine, inv: Invocation) -> None:
    if inv.has("-b"):
        _create_and_checkout(engine, inv, "-b")
        return
    if inv.has("-"):
        engine.checkout_previous()
        return
    if inv.has("-B"):
        args = inv.values("-B") + inv.args
        inv.two_args_implied_head(args, "-B")
        engine.force_branch(args[0], args[1])
        engine.checkout(unescape(args[0]))
        return
    inv.validate_arg_bounds(inv.args, 1, 1)
    engine.checkout(unescape(inv.args[0]))


@git_commands.register("switch", options=("-c", "-"))
def switch(engine: CommandEngine, inv: Invocation) -> None:
    if inv.has("-c"):
        _create_and_checkout(engine, inv, "-c")
        return
    if inv.has("-"):
        engine.checkout_previous()
        return
    inv.validate_arg_bounds(inv.args, 1, 1)
    engine.checkout(unescape(inv.args[0]))


def _create_and_checkout(engine: CommandEngine, inv: Invocation, option: str) -> None:
    args = inv.values(option) + inv.args
    inv.two_args_implied_head(args, option)
    name = engine.graph.validate_branch_name(args[0])
    engine.branch(name, args[1])
    engine.checkout(name)


@git_commands.register(
    "branch",
    options=("-d", "-D", "-f", "--force", "-a", "-r", "-u", "--contains"),
)
def branch(engine: CommandEngine, inv: Invocation) -> None:
    graph = engine.graph
    if inv.has("-d", "-D"):
        names = inv.values("-d", "-D") + inv.args
        inv.validate_arg_bounds(names, 1, None, "-d")
        for name in names:
            engine.delete_branch(name)
        return

    if inv.has("-u"):
        args = inv.values("-u") + inv.args
        inv.validate_arg_bounds(args, 1, 2, "-u")
        remote_branch = unescape(args[0])
        local = args[1] if len(args) > 1 else graph.one_before_commit(HEAD_ID).id
        require_branch(graph, local)
        engine.track(local, remote_branch)
        return

    if inv.has("--contains"):
        args = inv.values("--contains")
        inv.validate_arg_bounds(args, 1, 1, "--contains")
        raise NoOpResult(engine.format_branches(engine.branches_containing(args[0])))

    if inv.has("-f", "--force"):
        args = inv.values("-f", "--force") + inv.args
        inv.two_args_implied_head(args, "-f")
        engine.force_branch(args[0], args[1])
        return

    if not inv.args:
        if inv.has("-a"):
            branches = engine.list_branches("all")
        elif inv.has("-r"):
            branches = engine.list_branches("remote")
        else:
            branches = engine.list_branches("local")
        raise NoOpResult(engine.format_branches(branches))

    args = list(inv.args)
    inv.two_args_implied_head(args)
    engine.branch(args[0], args[1])


@git_commands.register("tag", options=("-d",))
def tag(engine: CommandEngine, inv: Invocation) -> None:
    if inv.has("-d"):
        names = inv.values("-d")
        inv.validate_arg_bounds(names, 1, 1, "-d")
        engine.delete_tag(names[0])
        return
    if not inv.args:
        raise NoOpResult(engine.format_tags())
    args = list(inv.args)
    inv.two_args_implied_head(args)
    engine.tag(args[0], args[1])


# =============================================================================
# Inspection
# =============================================================================


@git_commands.register("status")
def status(engine: CommandEngine, inv: Invocation) -> None:
    raise NoOpResult(engine.status())


@git_commands.register("log")
def log_(engine: CommandEngine, inv: Invocation) -> None:
    args = list(inv.args)
    inv.implied_head(args, 0)
    raise NoOpResult(engine.log(args))


@git_commands.register("rev-list")
def rev_list(engine: CommandEngine, inv: Invocation) -> None:
    inv.validate_arg_bounds(inv.args, 1)
    raise NoOpResult(engine.rev_list(inv.args))


@git_commands.register("show")
def show(engine: CommandEngine, inv: Invocation) -> None:
    args = list(inv.args)
    inv.one_arg_implied_head(args)
    raise NoOpResult(engine.show(args[0]))


@git_commands.register("describe")
def describe(engine: CommandEngine, inv: Invocation) -> None:
    if not engine.graph.tags:
        raise StateError(engine.messages.render("git-error-describe-none"))
    args = list(inv.args)
    inv.one_arg_implied_head(args)
    require_ref(engine.graph, args[0])
    raise NoOpResult(str(engine.describe(args[0])))


# =============================================================================
# Remote
# =============================================================================


@git_commands.register("clone")
def clone(engine: CommandEngine, inv: Invocation) -> None:
    _no_general_args(engine, inv)
    engine.remote.clone()


@git_commands.register("remote", options=("-v",))
def remote(engine: CommandEngine, inv: Invocation) -> None:
    _no_general_args(engine, inv)
    if not engine.graph.has_origin:
        raise NoOpResult("")
    raise NoOpResult(engine.format_remotes(verbose=inv.has("-v")))


@git_commands.register("fetch")
def fetch(engine: CommandEngine, inv: Invocation) -> None:
    graph = engine.graph
    origin = require_origin(graph)
    args = list(inv.args)
    inv.two_args_for_origin(args)
    _assert_origin_specified(args)

    source = destination = None
    first = args[1] if len(args) > 1 else None
    if first and _is_colon_refspec(first):
        source, raw_destination = first.split(":")
        destination = _validate_branch_name_if_needed(graph, unescape(raw_destination))
        require_not_checked_out(graph, destination)
    elif first:
        source = first
        require_branch(origin, source)
        destination = graph.config.remote_prefix + origin.resolve(source).id
    if source:
        require_ref(origin, source)

    engine.remote.fetch(source, destination)


@git_commands.register("pull", options=("--rebase",))
def pull(engine: CommandEngine, inv: Invocation) -> None:
    graph = engine.graph
    origin = require_origin(graph)
    args = list(inv.args)
    inv.two_args_for_origin(args)
    _assert_origin_specified(args)

    first = args[1] if len(args) > 1 else None
    if first and _is_colon_refspec(first):
        source, raw_destination = first.split(":")
        destination = _validate_branch_name_if_needed(graph, unescape(raw_destination))
        require_not_checked_out(graph, destination)
    elif first:
        source = first
        require_branch(origin, source)
        destination = graph.config.remote_prefix + origin.resolve(source).id
    else:
        if graph.head_is_detached:
            raise GitError(
                "Git pull can not be executed in detached HEAD mode "
                "if no remote branch specified!"
            )
        current = graph.one_before_commit(HEAD_ID)
        destination = require_tracking_branch(graph, current.id)
        source = destination.removeprefix(graph.config.remote_prefix)

    engine.remote.pull(source, destination, rebase=inv.has("--rebase"))


@git_commands.register("push", options=("--force",))
def push(engine: CommandEngine, inv: Invocation) -> None:
    graph = engine.graph
    origin = require_origin(graph)
    args = list(inv.args)
    inv.two_args_for_origin(args)
    _assert_origin_specified(args)

    first = args[1] if len(args) > 1 else None
    if first and _is_colon_refspec(first):
        source, raw_destination = first.split(":")
        destination = graph.validate_branch_name(raw_destination)
        if source == "" and destination not in origin:
            raise GitError(f"cannot delete branch {destination} which doesnt exist")
    else:
        if first:
            source_ref = graph.resolve(first)
        else:
            source_ref = graph.one_before_commit(HEAD_ID)
        source = source_ref.id
        if isinstance(source_ref, Branch) and source_ref.remote_tracking_id:
            tracked = require_tracking_branch(graph, source)
            destination = graph.resolve(tracked).id.removeprefix(graph.config.remote_prefix)
        else:
            destination = graph.validate_branch_name(source)
    if source:
        require_ref(graph, source)

    engine.remote.push(source, destination, force=inv.has("--force"))


@git_commands.register("fakeTeamwork")
def fake_teamwork(engine: CommandEngine, inv: Invocation) -> None:
    origin = require_origin(engine.graph)
    args = list(inv.args)
    inv.validate_arg_bounds(args, 0, 2)

    branch_name, count = "master", 1
    if len(args) == 1:
        if args[0].isdigit():
            count = int(args[0])
        else:
            branch_name = origin.validate_branch_name(args[0])
    elif len(args) == 2:
        branch_name = origin.validate_branch_name(args[0])
        if not args[1].isdigit():
            raise GitError(f"Bad numeric argument: {args[1]}")
        count = int(args[1])

    engine.remote.fake_teamwork(branch_name, count)
