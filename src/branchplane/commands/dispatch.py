"""The ``execute`` entry point.

Runs one command inside a graph transaction and converts every ``GitError``
into a ``CommandOutcome``. Any other exception is a bug and propagates.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from branchplane.commands.git import git_commands
from branchplane.commands.hg import hg_commands
from branchplane.commands.models import Command, CommandOutcome, Delegation, Invocation
from branchplane.commands.registry import CommandTable
from branchplane.core.logging import command_context
from branchplane.git.errors import GitError, NoOpResult
from branchplane.git.models import InteractiveRebasePlan

if TYPE_CHECKING:
    from branchplane.git.engine import CommandEngine

log = structlog.get_logger(__name__)

TABLES: dict[str, CommandTable] = {"git": git_commands, "hg": hg_commands}


def run_delegations(
    engine: CommandEngine,
    inv: Invocation,
    delegations: Delegation | Sequence[Delegation],
) -> Any:
    """Run git command(s) a secondary-dialect handler delegated to.

    A single delegation keeps the invocation's current arguments unless it
    overrides them. Each step of a multi-step delegation starts from its own
    arguments and options.
    """
    if isinstance(delegations, Delegation):
        if delegations.args is not None:
            inv.args = list(delegations.args)
        if delegations.options is not None:
            inv.options = dict(delegations.options)
        return git_commands.get(delegations.method).handler(engine, inv)

    result = None
    for step in delegations:
        inv.args = list(step.args or [])
        inv.options = dict(step.options or {})
        result = git_commands.get(step.method).handler(engine, inv)
    return result


def _run(engine: CommandEngine, command: Command) -> Any:
    spec = TABLES[command.dialect].get(command.method)
    spec.check_options(command.options)
    inv = Invocation.from_command(command)
    result = spec.handler(engine, inv)
    if isinstance(result, Delegation) or (
        isinstance(result, list) and all(isinstance(r, Delegation) for r in result)
    ):
        log.debug("command.delegated", dialect=command.dialect, method=command.method)
        result = run_delegations(engine, inv, result)
    return result


def _guarded(
    engine: CommandEngine,
    dialect: str,
    method: str,
    operation: Callable[[], Any],
    *,
    before: Callable[[], Any] | None = None,
) -> CommandOutcome:
    """Run ``operation`` in a transaction and turn its result into an outcome.

    ``before`` runs first, outside the transaction.
    """
    with command_context(dialect, method):
        return _outcome(engine, method, operation, before)


def _outcome(
    engine: CommandEngine,
    method: str,
    operation: Callable[[], Any],
    before: Callable[[], Any] | None,
) -> CommandOutcome:
    start_time = time.perf_counter()
    graph = engine.graph
    advisories: list[str] = []
    graph.begin_command(advisories)
    if before is not None:
        before()
    try:
        with graph.transaction():
            result = operation()
    except NoOpResult as e:
        status, text, plan = "noop", e.message, None
    except GitError as e:
        log.info(
            "command.failed",
            method=method,
            kind=e.kind,
            error=e.message,
            error_type=type(e).__name__,
        )
        return CommandOutcome(
            status="error",
            warnings=tuple(advisories),
            error_kind=e.kind,
            error_message=e.message,
        )
    else:
        if isinstance(result, InteractiveRebasePlan):
            status, text, plan = "pending", None, result
        else:
            status, text, plan = "success", result if isinstance(result, str) else None, None

    origin = graph.origin
    log.info(
        "command.completed",
        method=method,
        status=status,
        duration_ms=round((time.perf_counter() - start_time) * 1000, 1),
        warnings=len(advisories),
    )
    return CommandOutcome(
        status=status,
        result=text,
        warnings=tuple(advisories),
        changes=graph.changes.to_dict(),
        origin_changes=origin.changes.to_dict() if origin is not None else None,
        plan=plan,
    )


def execute(engine: CommandEngine, command: Command) -> CommandOutcome:
    """Execute one structured command against ``engine``.

    The graph pair is left untouched when the command fails. A ``NoOpResult``
    keeps whatever was applied before it. Switching dialect happens first and
    is kept even if the command then fails.
    """
    log.info(
        "command.started",
        dialect=command.dialect,
        method=command.method,
        args=command.general_args,
        options=command.options,
    )
    return _guarded(
        engine,
        command.dialect,
        command.method,
        lambda: _run(engine, command),
        before=lambda: engine.set_mode(command.dialect),
    )


def apply_rebase(
    engine: CommandEngine,
    plan: InteractiveRebasePlan,
    ordering: Sequence[str],
) -> CommandOutcome:
    """Finish a ``pending`` interactive rebase with the caller's chosen ordering."""
    return _guarded(engine, engine.mode, "rebase", lambda: engine.apply_rebase(plan, ordering))


def execute_all(engine: CommandEngine, commands: Sequence[Command]) -> list[CommandOutcome]:
    """Execute commands in order, continuing past failures."""
    return [execute(engine, command) for command in commands]
