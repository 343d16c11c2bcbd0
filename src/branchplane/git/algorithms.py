"""Traversal and search over a ``CommitGraph``.

Every function here is pure: it reads the graph and returns ids or commits.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Protocol, TypeVar

from branchplane.core.errors import InternalError
from branchplane.git.ids import sorted_ids
from branchplane.git.models import Commit, Ref

if TYPE_CHECKING:
    from branchplane.git.graph import CommitGraph


class _HasParents(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def parents(self) -> Sequence[str]: ...


T = TypeVar("T", bound=_HasParents)


def upstream_set(graph: CommitGraph, ref: str | Ref) -> set[str]:
    """Inclusive ancestor ids of ``ref`` over all parents."""
    start = graph.get_commit(ref)
    seen = {start.id}
    queue = [start.id]
    while queue:
        commit = graph.commits[queue.pop()]
        for parent_id in commit.parents:
            if parent_id not in seen:
                seen.add(parent_id)
                queue.append(parent_id)
    return seen


def downstream_set(graph: CommitGraph, ref: str | Ref) -> set[str]:
    """Inclusive descendant ids of ``ref``."""
    start = graph.get_commit(ref)
    seen = {start.id}
    queue = [start.id]
    while queue:
        for child_id in graph.children(queue.pop()):
            if child_id not in seen:
                seen.add(child_id)
                queue.append(child_id)
    return seen


def is_upstream_of(graph: CommitGraph, ancestor: str | Ref, descendant: str | Ref) -> bool:
    """True if ``ancestor`` is reachable from ``descendant`` (inclusive)."""
    return graph.get_commit(ancestor).id in upstream_set(graph, descendant)


def common_ancestor(
    graph: CommitGraph,
    ancestor: str | Ref,
    cousin: str | Ref,
    *,
    allow_unordered: bool = False,
) -> Commit:
    """First commit upstream of ``cousin`` that is also upstream of ``ancestor``.

    Raises InternalError if ``cousin`` is already upstream of ``ancestor`` and
    ``allow_unordered`` is not set.
    """
    if not allow_unordered and is_upstream_of(graph, cousin, ancestor):
        raise InternalError.unexpected(
            "common ancestor requested for ordered commits",
            ancestor=graph.get_commit(ancestor).id,
            cousin=graph.get_commit(cousin).id,
        )
    targets = upstream_set(graph, ancestor)
    stack = [graph.get_commit(cousin)]
    while stack:
        here = stack.pop()
        if here.id in targets:
            return here
        stack.extend(graph.commits[parent_id] for parent_id in here.parents)
    raise InternalError.unexpected(
        "commits are not connected",
        ancestor=graph.get_commit(ancestor).id,
        cousin=graph.get_commit(cousin).id,
    )


def diff_from_set(graph: CommitGraph, stop_set: set[str], start: str | Ref) -> list[Commit]:
    """Commits upstream of ``start`` outside ``stop_set``, newest first."""
    first = graph.get_commit(start)
    found: set[str] = set()
    queue = [first.id]
    while queue:
        commit_id = queue.pop()
        if commit_id in stop_set or commit_id in found:
            continue
        found.add(commit_id)
        queue.extend(graph.commits[commit_id].parents)
    return [graph.commits[commit_id] for commit_id in sorted_ids(found, reverse=True)]


def order_for_replay(pending: Sequence[T], satisfied: set[str]) -> list[T]:
    """Order commits so each one follows all of its parents.

    Repeatedly sweeps the pending list front to back. A commit whose parents
    are all in ``satisfied`` moves to the output and joins ``satisfied`` at
    once, so later commits in the same sweep can depend on it. Taking a commit
    also steps over the entry that slides into its slot; that entry waits for
    the next sweep. ``satisfied`` is updated in place.
    """
    remaining = list(pending)
    ordered: list[T] = []
    while remaining:
        before = len(remaining)
        index = 0
        while index < len(remaining):
            commit = remaining[index]
            if all(parent_id in satisfied for parent_id in commit.parents):
                ordered.append(commit)
                satisfied.add(commit.id)
                del remaining[index]
            index += 1
        if len(remaining) == before:
            raise InternalError.unexpected(
                "commits cannot be ordered for replay",
                pending=[commit.id for commit in remaining],
            )
    return ordered


def upstream_ref_map(graph: CommitGraph, refs: Iterable[Ref]) -> dict[str, list[str]]:
    """Map each commit id to the refs (in iteration order) that can reach it."""
    result: dict[str, list[str]] = {}
    for ref in refs:
        for commit_id in upstream_set(graph, ref):
            holders = result.setdefault(commit_id, [])
            if ref.id not in holders:
                holders.append(ref.id)
    return result
