"""Structured command execution for the git and hg dialects."""

from branchplane.commands.dispatch import (
    TABLES,
    apply_rebase,
    execute,
    execute_all,
    run_delegations,
)
from branchplane.commands.git import git_commands
from branchplane.commands.hg import hg_commands
from branchplane.commands.models import (
    Command,
    CommandOutcome,
    Delegation,
    Dialect,
    Invocation,
)
from branchplane.commands.registry import CommandSpec, CommandTable

__all__ = [
    "apply_rebase",
    "execute",
    "execute_all",
    "run_delegations",
    "TABLES",
    "git_commands",
    "hg_commands",
    "Command",
    "CommandOutcome",
    "CommandSpec",
    "CommandTable",
    "Delegation",
    "Dialect",
    "Invocation",
]
