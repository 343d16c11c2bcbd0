"""Graph entities and change records.

Commits live in an id-indexed arena owned by ``CommitGraph``. Parent links are
id lists; children are a derived index on the graph, never stored here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

RefKind = Literal["commit", "branch", "tag", "head"]

HEAD_ID = "HEAD"


def utc_timestamp() -> str:
    return datetime.now(UTC).strftime("%a %b %d %Y %H:%M:%S UTC")


@dataclass(slots=True)
class Commit:
    """A commit node. Only ``parents`` may change after creation (pointer repair)."""

    id: str
    parents: list[str]
    author: str
    message: str
    create_time: str = field(default_factory=utc_timestamp)
    root: bool = False

    kind: RefKind = field(default="commit", init=False, repr=False)

    def log_entry(self) -> str:
        lines = [
            f"Author: {self.author}",
            f"Date: {self.create_time}",
            "",
            self.message,
            "",
            f"Commit: {self.id}",
        ]
        return "\n".join(lines) + "\n"

    def show_entry(self) -> str:
        lines = [
            self.log_entry().rstrip("\n"),
            "diff --git a/bigGameResults.html b/bigGameResults.html",
            "--- bigGameResults.html",
            "+++ bigGameResults.html",
            "@@ 13,27 @@ Winner, Score",
            "- Stanfurd, 14-7",
            "+ Cal, 21-14",
        ]
        return "\n".join(lines) + "\n"


@dataclass(slots=True)
class Branch:
    """Branch pointing at a commit id."""

    id: str
    target: str
    is_remote: bool = False
    remote_tracking_id: str | None = None

    kind: RefKind = field(default="branch", init=False, repr=False)


@dataclass(slots=True)
class Tag:
    """Tag pointing at a commit id."""

    id: str
    target: str

    kind: RefKind = field(default="tag", init=False, repr=False)


@dataclass(frozen=True, slots=True)
class HeadTarget:
    """Where HEAD points: a branch id (attached) or a commit id (detached)."""

    ref: str
    detached: bool


@dataclass(slots=True)
class Head:
    """HEAD plus its previous target, for ``checkout -``."""

    current: HeadTarget
    previous: HeadTarget | None = None

    id: str = field(default=HEAD_ID, init=False)
    kind: RefKind = field(default="head", init=False, repr=False)

    @property
    def target(self) -> str:
        return self.current.ref

    @property
    def detached(self) -> bool:
        return self.current.detached

    def move(self, target: HeadTarget) -> None:
        self.previous = self.current
        self.current = target


Ref = Commit | Branch | Tag | Head


@dataclass(slots=True)
class GraphChanges:
    """Mutations applied to one graph during a command.

    ``stale_refs`` lists refs whose target moved or that were deleted; a caller
    holding derived state (layouts, caches) must re-derive those.
    """

    created_commits: list[str] = field(default_factory=list)
    removed_commits: list[str] = field(default_factory=list)
    repaired_commits: list[str] = field(default_factory=list)
    created_refs: list[str] = field(default_factory=list)
    deleted_refs: list[str] = field(default_factory=list)
    moved_refs: dict[str, tuple[str, str]] = field(default_factory=dict)

    @property
    def stale_refs(self) -> list[str]:
        return [*self.moved_refs, *self.deleted_refs]

    @property
    def is_empty(self) -> bool:
        return not (
            self.created_commits
            or self.removed_commits
            or self.repaired_commits
            or self.created_refs
            or self.deleted_refs
            or self.moved_refs
        )

    def record_move(self, ref_id: str, old: str, new: str) -> None:
        if ref_id in self.moved_refs:
            old = self.moved_refs[ref_id][0]
        if old == new:
            self.moved_refs.pop(ref_id, None)
            return
        self.moved_refs[ref_id] = (old, new)

    def to_dict(self) -> dict[str, object]:
        return {
            "created_commits": list(self.created_commits),
            "removed_commits": list(self.removed_commits),
            "repaired_commits": list(self.repaired_commits),
            "created_refs": list(self.created_refs),
            "deleted_refs": list(self.deleted_refs),
            "moved_refs": {k: list(v) for k, v in self.moved_refs.items()},
        }


@dataclass(frozen=True, slots=True)
class InteractiveRebasePlan:
    """First phase of an interactive rebase. Holds no graph references."""

    target: str
    location: str
    candidates: tuple[str, ...]
    initial_ordering: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "target": self.target,
            "location": self.location,
            "candidates": list(self.candidates),
            "initial_ordering": (
                list(self.initial_ordering) if self.initial_ordering is not None else None
            ),
        }


# =============================================================================
# Operation Results
# =============================================================================

MergeKind = Literal["fastforward", "merge"]
RebasePlanKind = Literal["uptodate", "fastforward", "replay"]
RebaseKind = Literal["fastforward", "replay"]


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Result of a merge."""

    kind: MergeKind
    commit_id: str | None = None


@dataclass(frozen=True, slots=True)
class RebasePlan:
    """A rebase ready for execution.

    ``steps`` lists the commit ids to replay, oldest first. Empty unless
    ``kind`` is ``"replay"``.
    """

    kind: RebasePlanKind
    target: str
    location: str
    steps: tuple[str, ...] = ()
    preserve_merges: bool = False


@dataclass(frozen=True, slots=True)
class RebaseResult:
    """Result of executing a rebase plan."""

    kind: RebaseKind
    created: tuple[str, ...] = ()
    tip: str | None = None


@dataclass(frozen=True, slots=True)
class DescribeResult:
    """Nearest upstream tag of a commit."""

    tag: str
    steps: int
    commit_id: str

    def __str__(self) -> str:
        if self.steps == 0:
            return self.tag
        return f"{self.tag}_{self.steps}_g{self.commit_id}"
