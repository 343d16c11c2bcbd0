"""Decision planners that separate "what to do" from "how to do it"."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from branchplane.git.algorithms import is_upstream_of
from branchplane.git.errors import GitError
from branchplane.git.models import Branch, Commit, Head, Ref, Tag

if TYPE_CHECKING:
    from branchplane.git.graph import CommitGraph


class CheckoutType(Enum):
    """Types of checkout operations."""

    NOOP = auto()
    ATTACH = auto()
    DETACH = auto()


@dataclass(frozen=True, slots=True)
class CheckoutPlan:
    """Plan for executing a checkout operation."""

    checkout_type: CheckoutType
    ref: str


class CheckoutPlanner:
    """Plans and executes checkout operations."""

    def __init__(self, graph: CommitGraph) -> None:
        self._graph = graph

    def plan(self, ref: str | Ref) -> CheckoutPlan:
        """Determine where HEAD should point.

        Remote branches and tags always detach onto their commit.
        """
        target = self._graph.resolve(ref)
        if isinstance(target, Head):
            return CheckoutPlan(CheckoutType.NOOP, target.id)
        if isinstance(target, Branch):
            if target.is_remote:
                return CheckoutPlan(CheckoutType.DETACH, target.target)
            return CheckoutPlan(CheckoutType.ATTACH, target.id)
        if isinstance(target, Tag):
            return CheckoutPlan(CheckoutType.DETACH, target.target)
        if isinstance(target, Commit):
            return CheckoutPlan(CheckoutType.DETACH, target.id)
        raise GitError(self._graph.messages.render("git-error-options"))

    def execute(self, plan: CheckoutPlan) -> None:
        if plan.checkout_type == CheckoutType.NOOP:
            return
        self._graph.set_head(plan.ref, detached=plan.checkout_type == CheckoutType.DETACH)

    def checkout(self, ref: str | Ref) -> CheckoutPlan:
        plan = self.plan(ref)
        self.execute(plan)
        return plan


class MergeType(Enum):
    """How a merge resolves."""

    UP_TO_DATE = auto()
    FAST_FORWARD = auto()
    MERGE_COMMIT = auto()


@dataclass(frozen=True, slots=True)
class MergePlan:
    """Plan for merging ``source`` into ``current``."""

    merge_type: MergeType
    source: str
    current: str


class MergePlanner:
    """Plans merges between two refs of one graph."""

    def __init__(self, graph: CommitGraph) -> None:
        self._graph = graph

    def is_merged(self, source: str | Ref, current: str | Ref) -> bool:
        """True if ``source`` already lies in ``current``'s history."""
        same = self._graph.get_commit(source).id == self._graph.get_commit(current).id
        return same or is_upstream_of(self._graph, source, current)

    def plan(self, source: str, current: str = "HEAD", *, no_ff: bool = False) -> MergePlan:
        source_id = self._graph.get_commit(source).id
        if self.is_merged(source, current):
            return MergePlan(MergeType.UP_TO_DATE, source_id, current)
        if not no_ff and is_upstream_of(self._graph, current, source):
            return MergePlan(MergeType.FAST_FORWARD, source_id, current)
        return MergePlan(MergeType.MERGE_COMMIT, source_id, current)
