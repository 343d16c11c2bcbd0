"""Commit DAG plus the flat ref namespace.

``CommitGraph`` owns commits, branches, tags and HEAD in one id-indexed table.
All ids are unique across the whole table. Commits are stored in an arena and
link to parents by id; the children index is derived and kept in step by the
mutation methods here, which also record every change in ``changes``.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from branchplane.config.models import EngineConfig
from branchplane.git import ids
from branchplane.git.algorithms import upstream_set
from branchplane.git.errors import (
    BadRelativeRefError,
    InvalidBranchNameError,
    NoOpResult,
    RefExistsError,
    RefNotFoundError,
)
from branchplane.git.messages import Messages
from branchplane.git.models import (
    HEAD_ID,
    Branch,
    Commit,
    GraphChanges,
    Head,
    HeadTarget,
    Ref,
    Tag,
)

log = structlog.get_logger()

MASTER = "master"

_MAIN_RE = re.compile(r"\bmain\b")
_LOWER_COMMIT_RE = re.compile(r"^c\d+'*")
_RELATIVE_REF_RE = re.compile(r"^(?P<base>[^~^]+)(?P<relative>(?:[~^]\d*)*)$")
_RELATIVE_STEP_RE = re.compile(r"([~^])(\d*)")
_BRANCH_NAME_RE = re.compile(r"^(\w+[./\-]?)+\w+$")
_HEAD_TOKEN_RE = re.compile(r"[Hh][Ee][Aa][Dd]")


def unescape(value: str) -> str:
    """Undo the HTML escaping applied by the command-line front end."""
    return value.replace("&#x27;", "'").replace("&#x2F;", "/")


def canonical_branch_name(name: str) -> str:
    """``main`` is stored as ``master``."""
    return _MAIN_RE.sub(MASTER, name, count=1)


@dataclass(frozen=True, slots=True)
class _Snapshot:
    commits: dict[str, Commit]
    branches: dict[str, Branch]
    tags: dict[str, Tag]
    head: Head | None
    children: dict[str, list[str]]
    counter: int


class CommitGraph:
    """One repository: commit arena, refs and HEAD.

    A graph may be paired with a peer: ``origin`` on the local side,
    ``local_repo`` on the origin side. Fresh ids are unique across both.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        messages: Messages | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.messages = messages or Messages()
        self.commits: dict[str, Commit] = {}
        self.branches: dict[str, Branch] = {}
        self.tags: dict[str, Tag] = {}
        self.head: Head | None = None
        self.origin: CommitGraph | None = None
        self.local_repo: CommitGraph | None = None
        self.changes = GraphChanges()
        self.advisories: list[str] = []
        self._children: dict[str, list[str]] = {}
        self._next_number = 0

    # =========================================================================
    # Pairing
    # =========================================================================

    @property
    def is_origin(self) -> bool:
        return self.local_repo is not None

    @property
    def has_origin(self) -> bool:
        return self.origin is not None

    @property
    def peer(self) -> CommitGraph | None:
        return self.origin or self.local_repo

    def attach_origin(self, origin: CommitGraph) -> None:
        self.origin = origin
        origin.local_repo = self
        origin.advisories = self.advisories

    def detach_origin(self) -> None:
        if self.origin is not None:
            self.origin.local_repo = None
        self.origin = None

    def begin_command(self, advisories: list[str]) -> None:
        """Reset change tracking and bind the advisory sink for one command."""
        self.changes = GraphChanges()
        self.advisories = advisories
        if self.origin is not None:
            self.origin.changes = GraphChanges()
            self.origin.advisories = advisories

    def warn(self, key: str, **params: object) -> None:
        self.advisories.append(self.messages.render(key, **params))

    # =========================================================================
    # Lookup
    # =========================================================================

    def __contains__(self, ref_id: object) -> bool:
        return isinstance(ref_id, str) and self._lookup(ref_id) is not None

    def _lookup(self, ref_id: str) -> Ref | None:
        if ref_id == HEAD_ID:
            return self.head
        return self.commits.get(ref_id) or self.branches.get(ref_id) or self.tags.get(ref_id)

    def ref_exists(self, ref_id: str) -> bool:
        return self._lookup(canonical_branch_name(ref_id)) is not None

    def get_head(self) -> Head:
        if self.head is None:
            raise RefNotFoundError(HEAD_ID)
        return self.head

    @property
    def head_is_detached(self) -> bool:
        return self.get_head().detached

    def iter_refs(self) -> Iterator[Branch | Tag]:
        yield from self.branches.values()
        yield from self.tags.values()

    def children(self, commit_id: str) -> list[str]:
        return list(self._children.get(commit_id, ()))

    # =========================================================================
    # Ref resolution
    # =========================================================================

    def resolve(self, ref: str | Ref) -> Ref:
        """Resolve a ref spec to an entity.

        Accepts literal ids, case-insensitive commit ids (``c4``) and a base
        ref followed by ``^n`` (nth parent) / ``~n`` (n first-parent hops).
        """
        if not isinstance(ref, str):
            return ref
        spec = canonical_branch_name(unescape(ref))

        found = self._lookup(spec)
        if found is not None:
            return found
        if _LOWER_COMMIT_RE.match(spec) and spec.upper() in self.commits:
            return self.commits[spec.upper()]

        match = _RELATIVE_REF_RE.match(spec)
        if match is None:
            raise RefNotFoundError(spec)
        base = match.group("base")
        start = self._lookup(base)
        if start is None and _LOWER_COMMIT_RE.match(base):
            start = self.commits.get(base.upper())
        if start is None:
            raise RefNotFoundError(spec)

        commit = self.get_commit(start)
        relative = match.group("relative")
        return self._walk_relative(commit, relative) if relative else commit

    def _walk_relative(self, commit: Commit, relative: str) -> Commit:
        for step in _RELATIVE_STEP_RE.finditer(relative):
            kind, digits = step.groups()
            count = int(digits) if digits else 1
            nxt: Commit | None
            if kind == "^":
                index = count - 1
                nxt = (
                    self.commits[commit.parents[index]]
                    if 0 <= index < len(commit.parents)
                    else None
                )
            else:
                nxt = commit
                while nxt is not None and count > 0:
                    nxt = self.commits[nxt.parents[0]] if nxt.parents else None
                    count -= 1
            if nxt is None:
                raise BadRelativeRefError(commit.id, step.group(0))
            commit = nxt
        return commit

    def get_commit(self, ref: str | Ref) -> Commit:
        """Dereference Branch/Tag/HEAD chains down to a commit."""
        start = self.resolve(ref)
        while not isinstance(start, Commit):
            start = self.resolve(start.target)
        return start

    def one_before_commit(self, ref: str | Ref) -> Ref:
        """The movable ref for ``ref``: HEAD resolves to its branch when attached."""
        start = self.resolve(ref)
        if isinstance(start, Head) and not start.detached:
            return self.resolve(start.target)
        return start

    def resolve_name(self, ref: str | Ref) -> str:
        resolved = self.resolve(ref)
        if isinstance(resolved, Commit):
            return f"commit {resolved.id}"
        if isinstance(resolved, Branch):
            return f'branch "{self.display_name(resolved.id)}"'
        return self.resolve_name(resolved.target)

    def display_name(self, branch_id: str) -> str:
        if self.config.display_main_alias and branch_id == MASTER:
            return "main"
        return branch_id

    # =========================================================================
    # Name validation
    # =========================================================================

    def validate_branch_name(self, name: str, kind: str = "branch") -> str:
        """Validate and normalize a branch or tag name.

        Overlong names are truncated with an advisory.
        """
        name = re.sub(r"\s", "", unescape(name))
        if (
            not _BRANCH_NAME_RE.match(name)
            or name.startswith(self.config.remote_prefix)
            or ids.is_commit_shaped(name)
            or _HEAD_TOKEN_RE.search(name)
        ):
            raise InvalidBranchNameError(name, kind)
        limit = self.config.branch_name_max_length
        if len(name) > limit:
            name = name[:limit]
            self.warn("branch-name-short", branch=name, limit=limit)
        return name

    def validate_and_make_branch(self, name: str, target: str) -> Branch:
        name = self.validate_branch_name(name)
        if self.ref_exists(name):
            raise InvalidBranchNameError(name)
        return self.make_branch(name, target)

    def validate_and_make_tag(self, name: str, target: str) -> Tag:
        name = self.validate_branch_name(name, "tag")
        if self.ref_exists(name):
            raise InvalidBranchNameError(name, "tag")
        return self.make_tag(name, target)

    # =========================================================================
    # Id allocation
    # =========================================================================

    def _id_taken(self, commit_id: str) -> bool:
        if commit_id in self:
            return True
        peer = self.peer
        return peer is not None and commit_id in peer

    def unique_id(self) -> str:
        """Next free ``C<n>``, unique across both graphs of a pair."""
        while True:
            candidate = ids.format_id(self._next_number)
            self._next_number += 1
            if not self._id_taken(candidate):
                return candidate

    def rewrite_id(self, commit_id: str) -> str:
        """First rewrite of ``commit_id`` not yet used in either graph."""
        candidate = ids.bump_id(commit_id)
        while self._id_taken(candidate):
            candidate = ids.bump_id(candidate)
        return candidate

    def most_recent_rewrite(self, commit_id: str) -> str:
        """Newest present rewrite in the chain starting at ``commit_id``."""
        latest = commit_id
        candidate = ids.bump_id(commit_id)
        while candidate in self.commits:
            latest = candidate
            candidate = ids.bump_id(candidate)
        return latest

    # =========================================================================
    # Mutation
    # =========================================================================

    def make_commit(
        self,
        parents: Iterable[str],
        commit_id: str | None = None,
        *,
        message: str | None = None,
        author: str | None = None,
        create_time: str | None = None,
        root: bool = False,
    ) -> Commit:
        parent_ids = list(parents)
        for parent_id in parent_ids:
            if parent_id not in self.commits:
                raise RefNotFoundError(parent_id)
        if commit_id is None:
            commit_id = self.unique_id()
        elif commit_id in self:
            raise RefExistsError(commit_id)

        commit = Commit(
            id=commit_id,
            parents=parent_ids,
            author=author or self.config.default_author,
            message=message or self.config.default_message,
            root=root,
        )
        if create_time is not None:
            commit.create_time = create_time
        self.commits[commit_id] = commit
        for parent_id in parent_ids:
            self._children.setdefault(parent_id, []).append(commit_id)
        self.changes.created_commits.append(commit_id)
        log.debug("commit.created", commit=commit_id, parents=parent_ids, origin=self.is_origin)
        return commit

    def make_branch(self, name: str, target: str) -> Branch:
        name = canonical_branch_name(name)
        if name in self:
            raise RefExistsError(name)
        commit = self.get_commit(target)
        branch = Branch(
            id=name,
            target=commit.id,
            is_remote=name.startswith(self.config.remote_prefix),
        )
        self.branches[name] = branch
        self.changes.created_refs.append(name)
        log.debug("branch.created", branch=name, target=commit.id, origin=self.is_origin)
        return branch

    def make_tag(self, name: str, target: str) -> Tag:
        if name in self:
            raise RefExistsError(name)
        commit = self.get_commit(target)
        tag = Tag(id=name, target=commit.id)
        self.tags[name] = tag
        self.changes.created_refs.append(name)
        log.debug("tag.created", tag=name, target=commit.id)
        return tag

    def make_head(self, target: str, *, detached: bool = False) -> Head:
        self.head = Head(current=HeadTarget(target, detached))
        return self.head

    def delete_branch(self, name: str) -> None:
        branch = self.branches.pop(canonical_branch_name(name))
        self.changes.deleted_refs.append(branch.id)
        head = self.head
        if head is not None and not head.detached and head.target == branch.id:
            self.set_head(MASTER)
        log.debug("branch.deleted", branch=branch.id, origin=self.is_origin)

    def delete_tag(self, name: str) -> None:
        tag = self.tags.pop(name)
        self.changes.deleted_refs.append(tag.id)
        log.debug("tag.deleted", tag=tag.id)

    def set_head(self, target: str, *, detached: bool = False) -> None:
        head = self.get_head()
        old = head.target
        head.move(HeadTarget(target, detached))
        self.changes.record_move(HEAD_ID, old, target)

    def set_target_location(self, ref: str | Ref, commit_id: str) -> None:
        """Point a branch, tag or HEAD at ``commit_id``.

        HEAD on a branch moves the branch. Commits are left alone.
        """
        if isinstance(self.resolve(ref), Commit):
            return
        movable = self.one_before_commit(ref)
        if isinstance(movable, Head):
            self.set_head(commit_id, detached=True)
            return
        assert isinstance(movable, (Branch, Tag))
        old = movable.target
        movable.target = commit_id
        self.changes.record_move(movable.id, old, commit_id)

    def set_tracking(self, branch_id: str, remote_branch_id: str | None) -> None:
        self.branches[branch_id].remote_tracking_id = remote_branch_id

    def reparent(self, commit_id: str, parents: list[str]) -> None:
        commit = self.commits[commit_id]
        for parent_id in commit.parents:
            self._children[parent_id].remove(commit_id)
        commit.parents = list(parents)
        for parent_id in parents:
            self._children.setdefault(parent_id, []).append(commit_id)
        self.changes.repaired_commits.append(commit_id)

    def repair_parent(self, commit_id: str) -> bool:
        """Re-point a single-parent commit at its parent's newest rewrite."""
        commit = self.commits[commit_id]
        if len(commit.parents) != 1:
            return False
        parent_id = commit.parents[0]
        newest = self.most_recent_rewrite(parent_id)
        if newest == parent_id:
            return False
        self.reparent(commit_id, [newest])
        log.debug("commit.reparented", commit=commit_id, parent=newest)
        return True

    def advance_to_latest_rewrites(self, branch_ids: Iterable[str]) -> bool:
        """Move each branch onto the newest rewrite of its current commit."""
        updated = False
        for branch_id in branch_ids:
            current = self.get_commit(branch_id).id
            newest = self.most_recent_rewrite(current)
            if newest == current:
                continue
            updated = True
            self.set_target_location(branch_id, newest)
        return updated

    def prune(self) -> list[str]:
        """Remove commits unreachable from any branch, tag or HEAD."""
        keep: set[str] = set()
        for ref in self.iter_refs():
            keep |= upstream_set(self, ref)
        if self.head is not None:
            keep |= upstream_set(self, HEAD_ID)

        doomed = [commit_id for commit_id in self.commits if commit_id not in keep]
        if not doomed:
            return []
        self.warn("hg-prune-tree")
        for commit_id in doomed:
            commit = self.commits.pop(commit_id)
            for parent_id in commit.parents:
                siblings = self._children.get(parent_id)
                if siblings and commit_id in siblings:
                    siblings.remove(commit_id)
            self._children.pop(commit_id, None)
            self.changes.removed_commits.append(commit_id)
        log.info("tree.pruned", removed=doomed, origin=self.is_origin)
        return doomed

    def clear(self) -> None:
        self.commits.clear()
        self.branches.clear()
        self.tags.clear()
        self._children.clear()
        self.head = None
        self._next_number = 0
        self.detach_origin()

    # =========================================================================
    # Transactions
    # =========================================================================

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            commits=copy.deepcopy(self.commits),
            branches=copy.deepcopy(self.branches),
            tags=copy.deepcopy(self.tags),
            head=copy.deepcopy(self.head),
            children=copy.deepcopy(self._children),
            counter=self._next_number,
        )

    def _restore(self, snap: _Snapshot) -> None:
        self.commits = snap.commits
        self.branches = snap.branches
        self.tags = snap.tags
        self.head = snap.head
        self._children = snap.children
        self._next_number = snap.counter
        self.changes = GraphChanges()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Roll this graph and its origin back if the block raises.

        ``NoOpResult`` is not a failure: whatever was applied before it stays.
        """
        origin = self.origin
        snaps = [(self, self._snapshot())]
        if origin is not None:
            snaps.append((origin, origin._snapshot()))
        try:
            yield
        except NoOpResult:
            raise
        except BaseException:
            if self.origin is not origin:
                self.origin = origin
                if origin is not None:
                    origin.local_repo = self
            for graph, snap in snaps:
                graph._restore(snap)
            raise
