"""Sync between a local graph and its simulated origin.

A commit keeps its id on both sides of a sync. Every transfer is planned in
full (fast-forward check, difference, replay order) before the first commit
is created on the receiving side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from branchplane.git._internal import (
    CheckoutPlanner,
    require_origin,
)
from branchplane.git.algorithms import common_ancestor, order_for_replay, upstream_set
from branchplane.git.errors import (
    GitError,
    NoOpResult,
    NotFastForwardError,
    OriginExistsError,
    ProtectedBranchError,
    RefNotFoundError,
    UpToDateError,
    ValidationError,
)
from branchplane.git.graph import MASTER, CommitGraph
from branchplane.git.models import (
    HEAD_ID,
    Branch,
    Commit,
    Head,
    MergeResult,
    RebaseResult,
    Ref,
    Tag,
)

if TYPE_CHECKING:
    from branchplane.git.engine import CommandEngine

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class PendingCommit:
    """A commit scheduled for transfer, with its distance from the source tip."""

    id: str
    parents: tuple[str, ...]
    depth: int


def _unique(pending: list[PendingCommit]) -> list[PendingCommit]:
    """First occurrence of each id, carrying the depth it was last reached at."""
    depths = {item.id: item.depth for item in pending}
    seen: set[str] = set()
    unique = []
    for item in pending:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(PendingCommit(item.id, item.parents, depths[item.id]))
    return unique


class RemoteSyncEngine:
    """Clone, fetch, push and pull for the engine's graph pair."""

    def __init__(self, engine: CommandEngine) -> None:
        self._engine = engine

    @property
    def local(self) -> CommitGraph:
        return self._engine.graph

    @property
    def origin(self) -> CommitGraph:
        return require_origin(self.local)

    def _prefixed(self, name: str) -> str:
        return f"{self.local.config.remote_prefix}{name}"

    # =========================================================================
    # Origin setup
    # =========================================================================

    def clone(self) -> CommitGraph:
        """Make an origin holding master and its history, with HEAD on master.

        Side branches, their commits and tags on them stay local.
        """
        from branchplane.tree.serializer import build_graph, export_tree_for_branch

        local = self.local
        if local.has_origin:
            raise OriginExistsError()
        origin = build_graph(
            export_tree_for_branch(local, MASTER),
            CommitGraph(local.config, local.messages),
        )
        self.attach_origin(origin)
        log.info("origin.cloned", commits=len(origin.commits), branches=list(origin.branches))
        return origin

    def attach_origin(self, origin: CommitGraph, *, announce: bool = True) -> None:
        """Pair ``origin`` with the local graph.

        Every origin branch without a local remote-tracking branch gets one at
        the newest commit both sides share; a same-named local branch starts
        tracking it.
        """
        local = self.local
        if local.has_origin:
            raise OriginExistsError()
        local.attach_origin(origin)
        for name, branch in origin.branches.items():
            remote_id = self._prefixed(name)
            if local.ref_exists(remote_id):
                continue
            attach_point = self.find_common_ancestor_with_remote(branch.target)
            remote_branch = local.make_branch(remote_id, attach_point)
            if name not in local.branches:
                continue
            if announce:
                self._engine.track(name, remote_branch.id)
            else:
                local.set_tracking(name, remote_branch.id)

    def find_common_ancestor_with_remote(self, origin_target: str) -> str:
        """Walk up from an origin commit to the first one the local graph has."""
        local, origin = self.local, self.origin
        while origin_target not in local.commits:
            parents = origin.commits[origin_target].parents
            if len(parents) == 1:
                origin_target = parents[0]
                continue
            left = self.find_common_ancestor_with_remote(parents[0])
            right = self.find_common_ancestor_with_remote(parents[1])
            return common_ancestor(local, left, right, allow_unordered=True).id
        return origin_target

    def find_common_ancestor_for_remote(self, local_target: str) -> str:
        """Walk up from a local commit to the first one origin has."""
        local, origin = self.local, self.origin
        while local_target not in origin.commits:
            parents = local.commits[local_target].parents
            if len(parents) == 1:
                local_target = parents[0]
                continue
            left = self.find_common_ancestor_for_remote(parents[0])
            right = self.find_common_ancestor_for_remote(parents[1])
            return common_ancestor(local, left, right, allow_unordered=True).id
        return local_target

    # =========================================================================
    # Planning
    # =========================================================================

    @staticmethod
    def check_upstream_of_source(
        target: CommitGraph,
        source: CommitGraph,
        target_ref: str | Ref,
        source_ref: str | Ref,
        message: str,
    ) -> None:
        """Raise unless ``target_ref``'s commit is in ``source_ref``'s history."""
        upstream = upstream_set(source, source_ref)
        if target.get_commit(target_ref).id not in upstream:
            raise NotFastForwardError(message)

    @staticmethod
    def graph_difference(
        target: CommitGraph,
        source: CommitGraph,
        target_ref: str | Ref,
        source_ref: str | Ref,
        *,
        tolerant: bool = False,
    ) -> list[PendingCommit]:
        """Commits ``source`` has upstream of ``source_ref`` that ``target_ref`` lacks.

        Returned in an order where every commit follows its parents.
        """
        target_set = upstream_set(target, target_ref)
        start = source.get_commit(source_ref)
        if start.id in target_set:
            if tolerant:
                return []
            raise UpToDateError()

        found: list[PendingCommit] = []
        stack = [PendingCommit(start.id, tuple(start.parents), 0)]
        while stack:
            here = stack.pop()
            found.append(here)
            for parent_id in here.parents:
                if parent_id in target_set:
                    continue
                parent = source.commits[parent_id]
                stack.append(PendingCommit(parent.id, tuple(parent.parents), here.depth + 1))

        return order_for_replay(_unique(found), set(target_set))

    # =========================================================================
    # Fetch
    # =========================================================================

    def fetch(
        self,
        source: str | None = None,
        destination: str | None = None,
        *,
        tolerant: bool = False,
    ) -> list[str] | None:
        """Download origin commits. Returns created ids, or None if only a branch was made."""
        local, origin = self.local, self.origin
        if destination and source == "":
            local.validate_and_make_branch(destination, local.get_commit(HEAD_ID).id)
            return None

        if destination and source:
            self.make_remote_branch_if_needed(source)
            self.make_branch_if_needed(destination)
            pairs = [(source, destination)]
        else:
            pairs = []
            for name, branch in list(origin.branches.items()):
                self.make_remote_branch_if_needed(name)
                pairs.append((name, self._prefixed(branch.id)))
        return self._fetch_core(pairs, tolerant=tolerant)

    def _fetch_core(self, pairs: list[tuple[str, str]], *, tolerant: bool) -> list[str]:
        local, origin = self.local, self.origin
        message = local.messages.render("git-error-origin-fetch-no-ff")
        for source, destination in pairs:
            self.check_upstream_of_source(local, origin, destination, source, message)

        pending: list[PendingCommit] = []
        for source, destination in pairs:
            pending.extend(
                self.graph_difference(local, origin, destination, source, tolerant=True)
            )
        if not pending and not tolerant:
            raise UpToDateError()

        unique = _unique(pending)
        unique.sort(key=lambda p: p.depth, reverse=True)

        created = []
        for item in unique:
            if item.id in local.commits:
                continue
            self._transfer(origin, local, item)
            created.append(item.id)

        for source, destination in pairs:
            local.set_target_location(destination, origin.get_commit(source).id)
        log.info("fetch.completed", pairs=pairs, created=created)
        return created

    def make_remote_branch_if_needed(self, name: str) -> Branch | None:
        local, origin = self.local, self.origin
        if local.ref_exists(self._prefixed(name)):
            return None
        source = origin.resolve(name)
        if not isinstance(source, Branch):
            return None
        attach_point = self.find_common_ancestor_with_remote(source.target)
        return local.make_branch(self._prefixed(source.id), attach_point)

    def make_branch_if_needed(self, name: str) -> Branch | None:
        local = self.local
        if local.ref_exists(name):
            return None
        where = self.find_common_ancestor_for_remote(local.get_commit(HEAD_ID).id)
        return local.validate_and_make_branch(name, where)

    @staticmethod
    def _transfer(source: CommitGraph, target: CommitGraph, item: PendingCommit) -> Commit:
        original = source.commits[item.id]
        return target.make_commit(
            item.parents,
            item.id,
            message=original.message,
            author=original.author,
            create_time=original.create_time,
        )

    # =========================================================================
    # Push
    # =========================================================================

    def push(self, source: str, destination: str, *, force: bool = False) -> list[str]:
        """Upload ``source`` to origin's ``destination``. Returns created ids.

        An empty ``source`` deletes ``destination`` on origin.
        """
        local, origin = self.local, self.origin
        if source == "":
            self.delete_remote_branch(destination)
            return []

        source_ref = local.resolve(source)
        if isinstance(source_ref, Tag):
            raise ValidationError(local.messages.render("git-error-tag-push"))
        source_commit = local.get_commit(source_ref)

        created_branch = not origin.ref_exists(destination)
        if created_branch:
            self.make_branch_on_origin_and_track(destination, source_commit.id)
        branch_on_remote = origin.resolve(destination)

        if not force:
            self.check_upstream_of_source(
                origin,
                local,
                branch_on_remote,
                source_ref,
                local.messages.render("git-error-origin-push-no-ff"),
            )

        pending = self.graph_difference(origin, local, branch_on_remote, source_ref, tolerant=True)
        if not pending and not created_branch:
            if not force or source_commit.id == origin.get_commit(branch_on_remote).id:
                raise UpToDateError()

        created = []
        for item in pending:
            if item.id in origin.commits:
                continue
            self._transfer(local, origin, item)
            created.append(item.id)

        origin.set_target_location(branch_on_remote, source_commit.id)
        local.set_target_location(self._prefixed(destination), source_commit.id)
        log.info("push.completed", source=source, destination=destination, created=created)
        return created

    def make_branch_on_origin_and_track(self, name: str, target: str) -> None:
        local, origin = self.local, self.origin
        remote_branch = local.make_branch(self._prefixed(name), target)
        if name in local.branches:
            self._engine.track(name, remote_branch.id)
        origin.make_branch(name, self.find_common_ancestor_for_remote(target))

    def delete_remote_branch(self, name: str) -> None:
        local, origin = self.local, self.origin
        branch_on_remote = origin.resolve(name)
        if not isinstance(branch_on_remote, Branch):
            raise RefNotFoundError(name)
        if branch_on_remote.id == MASTER:
            raise ProtectedBranchError(MASTER, "You cannot delete master branch on remote!")

        remote_id = self._prefixed(branch_on_remote.id)
        origin.delete_branch(branch_on_remote.id)
        if remote_id in local.branches:
            local.delete_branch(remote_id)
        for branch in local.branches.values():
            if branch.remote_tracking_id == remote_id:
                local.set_tracking(branch.id, None)
        origin.prune()
        log.info("push.deleted", branch=branch_on_remote.id)

    # =========================================================================
    # Pull
    # =========================================================================

    def pull(
        self,
        source: str | None,
        destination: str | None,
        *,
        rebase: bool = False,
    ) -> MergeResult | RebaseResult | None:
        """Fetch, then merge or rebase the current branch onto ``destination``."""
        engine, local = self._engine, self.local
        local_ref = local.one_before_commit(HEAD_ID)
        local_id = HEAD_ID if isinstance(local_ref, Head) else local_ref.id

        if self.fetch(source, destination, tolerant=True) is None:
            return None
        remote_ref = destination or self._prefixed(source or MASTER)

        if rebase:
            return self._pull_with_rebase(local_id, remote_ref)

        if engine.is_merged(remote_ref, local_id):
            raise NoOpResult(local.messages.render("git-result-uptodate"))
        return engine.merge(remote_ref)

    def _pull_with_rebase(self, local_id: str, remote_ref: str) -> RebaseResult:
        engine, local = self._engine, self.local
        if local.get_commit(remote_ref).id in upstream_set(local, local_id):
            raise NoOpResult(local.messages.render("git-result-uptodate"))
        if local.get_commit(local_id).id in upstream_set(local, remote_ref):
            return self._fast_forward(local_id, remote_ref)
        try:
            return engine.rebase(remote_ref, local_id)
        except NoOpResult:
            return self._fast_forward(local_id, remote_ref)

    def _fast_forward(self, local_id: str, remote_ref: str) -> RebaseResult:
        local = self.local
        tip = local.get_commit(remote_ref).id
        local.set_target_location(local_id, tip)
        self._engine.checkout(local_id)
        return RebaseResult("fastforward", tip=tip)

    # =========================================================================
    # Simulated collaborators
    # =========================================================================

    def fake_teamwork(self, branch: str, count: int) -> list[Commit]:
        """Commit ``count`` times on origin's ``branch``."""
        local, origin = self.local, self.origin
        target = origin.resolve(branch)
        if not isinstance(target, Branch):
            raise GitError(local.messages.render("git-error-options"))

        checkout = CheckoutPlanner(origin)
        created = []
        for _ in range(count):
            commit_id = local.unique_id()
            checkout.checkout(target.id)
            new_commit = origin.make_commit([origin.get_commit(HEAD_ID).id], commit_id)
            origin.set_target_location(HEAD_ID, new_commit.id)
            created.append(new_commit)
        log.info("origin.teamwork", branch=target.id, created=[c.id for c in created])
        return created

