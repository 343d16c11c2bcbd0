"""Rebase planning and replay over a ``CommitGraph``."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from branchplane.git import ids
from branchplane.git._internal.planners import CheckoutPlanner
from branchplane.git.algorithms import diff_from_set, is_upstream_of, upstream_set
from branchplane.git.errors import NoOpResult, ValidationError
from branchplane.git.models import Commit, InteractiveRebasePlan, RebasePlan, RebaseResult

if TYPE_CHECKING:
    from branchplane.git.graph import CommitGraph

log = structlog.get_logger()


class RebasePlanner:
    """Generates rebase plans. Never mutates the graph."""

    def __init__(self, graph: CommitGraph) -> None:
        self._graph = graph

    def plan(self, target: str, location: str, *, preserve_merges: bool = False) -> RebasePlan:
        """Plan replaying ``location``'s unique commits onto ``target``.

        Raises NoOpResult when nothing is left to replay.
        """
        graph = self._graph
        target_id = graph.get_commit(target).id
        if is_upstream_of(graph, target, location):
            return RebasePlan("uptodate", target_id, location)
        if is_upstream_of(graph, location, target):
            return RebasePlan("fastforward", target_id, location)

        stop_set = upstream_set(graph, target)
        rough = diff_from_set(graph, stop_set, location)
        steps = self._filter(rough, stop_set, preserve_merges=preserve_merges)
        return RebasePlan(
            "replay",
            target_id,
            location,
            steps=tuple(reversed(steps)),
            preserve_merges=preserve_merges,
        )

    def _filter(
        self,
        commits: Iterable[Commit],
        stop_set: set[str],
        *,
        preserve_merges: bool = False,
    ) -> list[str]:
        """Drop merges and commits whose change is already applied."""
        applied = {ids.base_id(commit_id) for commit_id in stop_set}
        kept: list[str] = []
        for commit in commits:
            if not preserve_merges and len(commit.parents) != 1:
                continue
            base = ids.base_id(commit.id)
            if base in applied:
                continue
            applied.add(base)
            kept.append(commit.id)
        if not kept:
            raise NoOpResult(self._graph.messages.render("git-error-rebase-none"))
        return kept

    # =========================================================================
    # Interactive
    # =========================================================================

    def interactive_candidates(self, target: str, location: str) -> list[str]:
        """Single-parent commits between ``target`` and ``location``, oldest first."""
        graph = self._graph
        stop_set = upstream_set(graph, target)
        seen: set[str] = set()
        found: list[Commit] = []
        stack = [graph.get_commit(location)]
        while stack:
            commit = stack.pop()
            if commit.id in stop_set or commit.id in seen:
                continue
            seen.add(commit.id)
            found.append(commit)
            stack.extend(graph.commits[parent_id] for parent_id in commit.parents)
            stack.sort(key=lambda c: ids.id_sort_key(c.id))

        candidates = [commit.id for commit in found if len(commit.parents) == 1]
        if not candidates:
            raise NoOpResult(graph.messages.render("git-error-rebase-none"))
        return list(reversed(candidates))

    def plan_interactive(
        self,
        target: str,
        location: str,
        initial_ordering: Sequence[str] | None = None,
    ) -> InteractiveRebasePlan:
        """First phase: the candidates a caller may reorder or drop."""
        candidates = self.interactive_candidates(target, location)
        ordering = None
        if initial_ordering is not None:
            ordering = tuple(self._check_subset(initial_ordering, candidates))
        return InteractiveRebasePlan(
            target=self._graph.get_commit(target).id,
            location=location,
            candidates=tuple(candidates),
            initial_ordering=ordering,
        )

    def plan_from_order(self, plan: InteractiveRebasePlan, ordering: Sequence[str]) -> RebasePlan:
        """Second phase: turn a chosen ordering into a replay plan.

        An empty ordering means the user dropped everything.
        """
        if not ordering:
            raise NoOpResult(self._graph.messages.render("git-result-nothing"))
        chosen = self._check_subset(ordering, plan.candidates)
        missing = [commit_id for commit_id in chosen if commit_id not in self._graph.commits]
        if missing:
            raise ValidationError(f"Commits no longer exist: {', '.join(missing)}")
        steps = self._filter((self._graph.commits[c] for c in chosen), set())
        return RebasePlan("replay", plan.target, plan.location, steps=tuple(steps))

    def _check_subset(self, ordering: Iterable[str], candidates: Sequence[str]) -> list[str]:
        allowed = set(candidates)
        chosen: list[str] = []
        for raw in ordering:
            commit_id = raw.strip()
            if ids.is_commit_shaped(commit_id):
                commit_id = commit_id.upper()
            if commit_id not in allowed:
                raise ValidationError(
                    self._graph.messages.render(
                        "git-error-interactive-subset", allowed=", ".join(candidates)
                    )
                )
            chosen.append(commit_id)
        return chosen


class RebaseFlow:
    """Executes rebase plans."""

    def __init__(self, graph: CommitGraph) -> None:
        self._graph = graph
        self._checkout = CheckoutPlanner(graph)

    def execute(self, plan: RebasePlan) -> RebaseResult:
        graph = self._graph
        if plan.kind == "uptodate":
            self._checkout.checkout(plan.location)
            raise NoOpResult(graph.messages.render("git-result-uptodate"))
        if plan.kind == "fastforward":
            graph.set_target_location(plan.location, plan.target)
            self._checkout.checkout(plan.location)
            return RebaseResult("fastforward", tip=plan.target)
        return self._replay(plan)

    def _replay(self, plan: RebasePlan) -> RebaseResult:
        graph = self._graph
        base = graph.commits[plan.target]
        created: list[str] = []
        for index, old_id in enumerate(plan.steps):
            old = graph.commits[old_id]
            if plan.preserve_merges and index > 0:
                parents = [graph.most_recent_rewrite(p) for p in old.parents]
            else:
                parents = [base.id]
            base = graph.make_commit(
                parents,
                graph.rewrite_id(old.id),
                message=old.message,
                author=old.author,
            )
            created.append(base.id)

        if isinstance(graph.resolve(plan.location), Commit):
            self._checkout.checkout(base.id)
        else:
            graph.set_target_location(plan.location, base.id)
            self._checkout.checkout(plan.location)
        log.info("rebase.replayed", onto=plan.target, created=created)
        return RebaseResult("replay", created=tuple(created), tip=base.id)
