"""Precondition helpers and HEAD state policy for graph operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from branchplane.git.errors import (
    DetachedHeadError,
    GitError,
    OriginRequiredError,
    ProtectedBranchError,
    RefNotFoundError,
    ValidationError,
)
from branchplane.git.graph import MASTER
from branchplane.git.models import Branch, Commit

if TYPE_CHECKING:
    from branchplane.git.graph import CommitGraph

# =============================================================================
# Ref Preconditions
# =============================================================================


def require_ref(graph: CommitGraph, ref: str) -> None:
    """Raise if ref does not resolve."""
    graph.resolve(ref)


def require_branch(graph: CommitGraph, ref: str) -> Branch:
    """Raise unless ref resolves to a branch; return it."""
    resolved = graph.resolve(ref)
    if not isinstance(resolved, Branch):
        raise ValidationError(f"{ref} is not a branch")
    return resolved


def require_remote_branch(graph: CommitGraph, ref: str) -> Branch:
    """Raise unless ref resolves to a remote-tracking branch."""
    resolved = graph.resolve(ref)
    if not isinstance(resolved, Branch) or not resolved.is_remote:
        raise ValidationError(f"{ref} is not a remote branch")
    return resolved


def require_local_branch(graph: CommitGraph, ref: str) -> Branch:
    """Raise unless ref resolves to a non-remote branch."""
    resolved = graph.resolve(ref)
    if not isinstance(resolved, Branch):
        raise GitError(graph.messages.render("git-error-options"))
    if resolved.is_remote:
        raise ProtectedBranchError(resolved.id, graph.messages.render("git-error-remote-branch"))
    return resolved


def require_tracking_branch(graph: CommitGraph, name: str) -> str:
    """Raise unless ``name`` is a branch tracking a remote; return the tracked id."""
    branch = require_branch(graph, name)
    if not branch.remote_tracking_id:
        raise ValidationError(
            f"{name} is not a remote tracking branch! I don't know where to push"
        )
    return branch.remote_tracking_id


def require_not_checked_out(graph: CommitGraph, name: str) -> None:
    """Raise if HEAD is attached to branch ``name``."""
    if name not in graph.branches:
        return
    head = graph.get_head()
    if not head.detached and head.target == name:
        raise ValidationError(f"cannot fetch to {name} when checked out on {name}")


# =============================================================================
# Branch Policy
# =============================================================================


def require_deletable_branch(graph: CommitGraph, name: str) -> Branch:
    """Raise if branch is missing, master, checked out or remote."""
    resolved = graph.resolve(name)
    head = graph.get_head()
    if not isinstance(resolved, Branch):
        raise RefNotFoundError(name)
    if resolved.id == MASTER:
        raise ProtectedBranchError(resolved.id, "master cannot be deleted")
    if not head.detached and head.target == resolved.id:
        raise ProtectedBranchError(resolved.id, "it is checked out")
    if resolved.is_remote:
        raise ProtectedBranchError(resolved.id, graph.messages.render("git-error-remote-branch"))
    return resolved


# =============================================================================
# HEAD Policy
# =============================================================================


def require_attached_head(graph: CommitGraph, message_key: str) -> Branch:
    """Checked-out branch; a detached HEAD raises with ``message_key``'s text."""
    head = graph.get_head()
    if head.detached:
        raise DetachedHeadError(graph.messages.render(message_key))
    return graph.branches[head.target]


def require_not_upstream_of_head(graph: CommitGraph, commit: Commit, upstream: set[str]) -> None:
    """Raise if ``commit`` is already part of HEAD's history."""
    if commit.id in upstream:
        raise ValidationError(graph.messages.render("git-error-already-exists", commit=commit.id))


# =============================================================================
# Origin Policy
# =============================================================================


def require_origin(graph: CommitGraph) -> CommitGraph:
    """Raise if the graph has no origin; return it."""
    if graph.origin is None:
        raise OriginRequiredError()
    return graph.origin
