"""Command engine: one operation per supported command.

Every method takes already-parsed arguments, validates its preconditions
before touching the graph, and then mutates. Read-only operations return
display text. Argument parsing lives in ``branchplane.commands``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Literal

import structlog

from branchplane.config.models import EngineConfig
from branchplane.git import ids
from branchplane.git._internal import (
    CheckoutPlanner,
    MergePlanner,
    MergeType,
    RebaseFlow,
    RebasePlanner,
    require_attached_head,
    require_deletable_branch,
    require_local_branch,
    require_not_upstream_of_head,
    require_remote_branch,
)
from branchplane.git.algorithms import diff_from_set, downstream_set, upstream_ref_map, upstream_set
from branchplane.git.errors import NoOpResult, RefNotFoundError, StateError, ValidationError
from branchplane.git.graph import CommitGraph, unescape
from branchplane.git.messages import Messages
from branchplane.git.models import (
    HEAD_ID,
    Branch,
    Commit,
    DescribeResult,
    InteractiveRebasePlan,
    MergeResult,
    RebaseResult,
    Ref,
    Tag,
)
from branchplane.git.remote import RemoteSyncEngine
from branchplane.git.revisions import RevisionRange

log = structlog.get_logger()

Mode = Literal["git", "hg"]
BranchScope = Literal["local", "remote", "all"]

_QUOTE_RE = re.compile(r'^"|"$')


def clean_message(message: str) -> str:
    """Strip HTML-escaped and surrounding double quotes from a commit message."""
    return _QUOTE_RE.sub("", message.replace("&quot;", '"'))


class CommandEngine:
    """Stateful orchestrator over one ``CommitGraph`` (and its origin)."""

    def __init__(
        self,
        graph: CommitGraph | None = None,
        *,
        config: EngineConfig | None = None,
        messages: Messages | None = None,
        mode: Mode = "git",
    ) -> None:
        self.graph = graph or CommitGraph(config, messages)
        self.mode: Mode = mode
        self._checkout = CheckoutPlanner(self.graph)
        self._merge = MergePlanner(self.graph)
        self._rebase_planner = RebasePlanner(self.graph)
        self._rebase_flow = RebaseFlow(self.graph)
        self.remote = RemoteSyncEngine(self)

    @property
    def messages(self) -> Messages:
        return self.graph.messages

    @property
    def is_hg(self) -> bool:
        return self.mode == "hg"

    def set_mode(self, mode: Mode) -> bool:
        """Switch dialect. Entering hg mode tidies both graphs.

        Returns True if anything was moved or pruned.
        """
        switched_to_hg = self.mode == "git" and mode == "hg"
        self.mode = mode
        if not switched_to_hg:
            return False
        changed = False
        for graph in (self.graph, self.graph.origin):
            if graph is None:
                continue
            advanced = graph.advance_to_latest_rewrites(list(graph.branches))
            pruned = graph.prune()
            changed = changed or advanced or bool(pruned)
        log.info("mode.changed", mode=mode, changed=changed)
        return changed

    # =========================================================================
    # Read Operations
    # =========================================================================

    def status(self) -> str:
        head = self.graph.get_head()
        if head.detached:
            first = self.messages.render("git-status-detached")
        else:
            first = self.messages.render("git-status-onbranch", branch=head.target)
        lines = [
            first,
            "Changes to be committed:",
            "",
            "\tmodified: cal/OskiCostume.stl",
            "",
            self.messages.render("git-status-readytocommit"),
        ]
        return "".join(f"# {line}\n" for line in lines)

    def log(self, specifiers: Sequence[str]) -> str:
        return RevisionRange(self.graph, specifiers).format(Commit.log_entry)

    def rev_list(self, specifiers: Sequence[str]) -> str:
        return RevisionRange(self.graph, specifiers).format(lambda c: f"{c.id}\n")

    def show(self, ref: str) -> str:
        return self.graph.get_commit(ref).show_entry()

    def describe(self, ref: str) -> DescribeResult:
        """Nearest tag upstream of ``ref``."""
        start = self.graph.get_commit(ref)
        tag_map = {tag.target: tag.id for tag in self.graph.tags.values()}
        stack = [start]
        walked = 0
        while stack:
            commit = stack.pop()
            if commit.id in tag_map:
                return DescribeResult(tag_map[commit.id], walked, start.id)
            walked += 1
            if commit.parents:
                stack.extend(self.graph.commits[p] for p in commit.parents)
                stack.sort(key=lambda c: ids.id_sort_key(c.id))
        raise StateError(self.messages.render("git-error-describe-none"))

    def list_branches(self, scope: BranchScope = "local") -> list[Branch]:
        branches = list(self.graph.branches.values())
        if scope == "local":
            return [b for b in branches if not b.is_remote]
        if scope == "remote":
            return [b for b in branches if b.is_remote]
        return branches

    def format_branches(self, branches: Iterable[Branch]) -> str:
        head = self.graph.get_head()
        selected = None if head.detached else head.target
        return "".join(
            f"{'* ' if branch.id == selected else ''}{branch.id}\n" for branch in branches
        )

    def branches_containing(self, ref: str) -> list[Branch]:
        """Branches whose history includes ``ref``."""
        commit_id = self.graph.get_commit(ref).id
        holders = upstream_ref_map(self.graph, self.graph.branches.values()).get(commit_id, [])
        return [self.graph.branches[branch_id] for branch_id in holders]

    def format_tags(self) -> str:
        return "".join(f"{tag.id}\n" for tag in self.graph.tags.values())

    def format_remotes(self, *, verbose: bool = False) -> str:
        if not verbose:
            return "origin"
        url = "git@github.com:pcottle/foo.git"
        return f"origin (fetch)\n\t{url}\n\norigin (push)\n\t{url}"

    # =========================================================================
    # Write Operations
    # =========================================================================

    def commit(self, *, amend: bool = False, message: str | None = None) -> Commit:
        """Commit on top of HEAD. Amending replaces HEAD with a rewrite."""
        graph = self.graph
        parent = graph.get_commit(HEAD_ID)
        commit_id = None
        if amend:
            commit_id = graph.rewrite_id(parent.id)
            parent = graph.get_commit("HEAD~1")

        new_commit = graph.make_commit([parent.id], commit_id)
        if message:
            new_commit.message = clean_message(message)
        if graph.head_is_detached and self.mode == "git":
            graph.warn("git-warning-detached")
        graph.set_target_location(HEAD_ID, new_commit.id)
        return new_commit

    def checkout(self, ref: str | Ref) -> None:
        self._checkout.checkout(ref)

    def checkout_previous(self) -> None:
        """Return HEAD to where it pointed before the last move."""
        head = self.graph.get_head()
        if head.previous is None:
            raise NoOpResult(self.messages.render("git-result-nothing"))
        self.graph.set_head(head.previous.ref, detached=head.previous.detached)

    def branch(self, name: str, ref: str) -> Branch:
        """Create branch ``name`` at ``ref``; tracking is set up for remote refs."""
        graph = self.graph
        target = graph.get_commit(ref)
        new_branch = graph.validate_and_make_branch(name, target.id)
        resolved = graph.resolve(ref)
        if isinstance(resolved, Branch) and resolved.is_remote:
            self.track(new_branch.id, resolved.id)
        return new_branch

    def force_branch(self, name: str, ref: str) -> None:
        """Create ``name`` if needed, then move it to ``ref``."""
        graph = self.graph
        name = unescape(name)
        if not graph.ref_exists(name):
            self.branch(name, ref)
        branch = require_local_branch(graph, name)
        graph.set_target_location(branch.id, graph.get_commit(ref).id)

    def delete_branch(self, name: str) -> None:
        branch = require_deletable_branch(self.graph, name)
        self.graph.delete_branch(branch.id)

    def track(self, local: str, remote: str) -> None:
        """Make branch ``local`` track remote-tracking branch ``remote``."""
        graph = self.graph
        remote_branch = require_remote_branch(graph, remote)
        local_branch = graph.resolve(local)
        if not isinstance(local_branch, Branch):
            raise RefNotFoundError(local)
        graph.set_tracking(local_branch.id, remote_branch.id)
        graph.warn(
            "tracking-set",
            local=graph.display_name(local_branch.id),
            remote=graph.display_name(remote_branch.id),
        )

    def tag(self, name: str, ref: str) -> Tag:
        target = self.graph.get_commit(ref)
        return self.graph.validate_and_make_tag(name, target.id)

    def delete_tag(self, name: str) -> None:
        if name not in self.graph.tags:
            raise ValidationError(self.messages.render("git-error-tag", tag=name))
        self.graph.delete_tag(name)

    def merge(self, ref: str, *, no_ff: bool = False) -> MergeResult:
        graph = self.graph
        plan = self._merge.plan(ref, HEAD_ID, no_ff=no_ff)
        if plan.merge_type == MergeType.UP_TO_DATE:
            raise NoOpResult(self.messages.render("git-result-uptodate"))
        if plan.merge_type == MergeType.FAST_FORWARD:
            graph.set_target_location(HEAD_ID, plan.source)
            return MergeResult("fastforward", plan.source)

        message = self.messages.render(
            "git-merge-msg",
            target=graph.resolve_name(ref),
            current=graph.resolve_name(HEAD_ID),
        )
        current = graph.get_commit(HEAD_ID)
        merge_commit = graph.make_commit([current.id, plan.source], message=message)
        graph.set_target_location(HEAD_ID, merge_commit.id)
        log.debug("merge.committed", commit=merge_commit.id, parents=merge_commit.parents)
        return MergeResult("merge", merge_commit.id)

    def is_merged(self, source: str | Ref, current: str | Ref) -> bool:
        return self._merge.is_merged(source, current)

    def rebase(self, target: str, location: str, *, preserve_merges: bool = False) -> RebaseResult:
        plan = self._rebase_planner.plan(target, location, preserve_merges=preserve_merges)
        return self._rebase_flow.execute(plan)

    def plan_interactive_rebase(
        self,
        target: str,
        location: str,
        initial_ordering: Sequence[str] | None = None,
    ) -> InteractiveRebasePlan:
        """First phase of an interactive rebase. Never mutates."""
        return self._rebase_planner.plan_interactive(target, location, initial_ordering)

    def apply_rebase(self, plan: InteractiveRebasePlan, ordering: Sequence[str]) -> RebaseResult:
        """Second phase: replay ``ordering`` (a subset of the candidates) onto the target."""
        rebase_plan = self._rebase_planner.plan_from_order(plan, ordering)
        result = self._rebase_flow.execute(rebase_plan)
        log.info("rebase.applied", target=plan.target, ordering=list(ordering))
        return result

    def interactive_rebase(
        self, target: str, location: str, ordering: Sequence[str]
    ) -> RebaseResult:
        """Both phases at once. An empty ordering keeps every candidate."""
        plan = self.plan_interactive_rebase(target, location)
        return self.apply_rebase(plan, list(ordering) or list(plan.candidates))

    def cherry_pick(self, refs: Sequence[str]) -> list[Commit]:
        graph = self.graph
        upstream = upstream_set(graph, HEAD_ID)
        picks = [graph.get_commit(ref) for ref in refs]
        for commit in picks:
            require_not_upstream_of_head(graph, commit, upstream)

        created = []
        for commit in picks:
            new_commit = graph.make_commit(
                [graph.get_commit(HEAD_ID).id],
                graph.rewrite_id(commit.id),
                message=commit.message,
            )
            graph.set_target_location(HEAD_ID, new_commit.id)
            created.append(new_commit)
        return created

    def revert(self, refs: Sequence[str]) -> list[Commit]:
        graph = self.graph
        targets = [graph.get_commit(ref) for ref in refs]
        base = graph.get_commit(HEAD_ID)
        created = []
        for old in targets:
            message = self.messages.render(
                "git-revert-msg",
                old_commit=graph.resolve_name(old),
                old_msg=old.message,
            )
            base = graph.make_commit([base.id], graph.rewrite_id(old.id), message=message)
            created.append(base)
        graph.set_target_location(HEAD_ID, base.id)
        return created

    def reset(self, ref: str) -> None:
        graph = self.graph
        require_attached_head(graph, "git-error-reset-detached")
        graph.set_target_location(HEAD_ID, graph.get_commit(ref).id)

    # =========================================================================
    # Mercurial Operations
    # =========================================================================

    def hg_rebase(self, destination: str, base: str) -> RebaseResult:
        """Rebase, then repair dependents, advance branches and prune."""
        graph = self.graph
        plan = self._rebase_planner.plan(destination, base)
        if plan.kind != "replay":
            return self._rebase_flow.execute(plan)

        base_commit = graph.get_commit(base)
        upstream = diff_from_set(graph, upstream_set(graph, destination), base)
        affected: dict[str, None] = {base_commit.id: None}
        for commit in upstream:
            affected[commit.id] = None
        affected.update(dict.fromkeys(downstream_set(graph, base)))
        for commit in upstream:
            affected.update(dict.fromkeys(downstream_set(graph, commit.id)))

        holders = upstream_ref_map(graph, graph.branches.values())
        branch_ids: dict[str, None] = {}
        for commit_id in affected:
            branch_ids.update(dict.fromkeys(holders.get(commit_id, [])))

        result = self._rebase_flow.execute(plan)
        for commit_id in affected:
            graph.repair_parent(commit_id)
        graph.advance_to_latest_rewrites(branch_ids)
        graph.prune()
        log.info("hg.rebase", destination=destination, base=base_commit.id)
        return result
