"""Canonical tree export/import.

Export flattens a graph (and its origin) into id-keyed maps. Import rebuilds
the graph with every commit created only after all of its parents exist.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

import structlog
from pydantic import ValidationError as PydanticValidationError

from branchplane.core.errors import TreeError
from branchplane.git import ids
from branchplane.git.algorithms import order_for_replay, upstream_set
from branchplane.git.errors import GitError
from branchplane.git.graph import MASTER, CommitGraph
from branchplane.git.models import HEAD_ID
from branchplane.tree.schema import (
    DEFAULT_TREE,
    BranchNode,
    CommitNode,
    HeadNode,
    TagNode,
    TreeModel,
)

if TYPE_CHECKING:
    from branchplane.git.engine import CommandEngine

log = structlog.get_logger()

_COMMIT_FIELDS = ("parents", "id", "rootCommit")
_BRANCH_FIELDS = ("target", "id", "remoteTrackingBranchID")
_TAG_FIELDS = ("target", "id")
_FIELD_DEFAULTS: dict[str, Any] = {"remoteTrackingBranchID": None}


def default_tree() -> TreeModel:
    """Root ``C0``, ``C1`` on ``master``, HEAD on ``master``."""
    return DEFAULT_TREE.model_copy(deep=True)


# =============================================================================
# Export
# =============================================================================


def export_tree(graph: CommitGraph) -> TreeModel:
    """Flatten ``graph`` and, when present, its origin."""
    commits = {
        commit.id: CommitNode(
            id=commit.id,
            parents=list(commit.parents),
            root_commit=True if commit.root else None,
            author=commit.author,
            create_time=commit.create_time,
            commit_message=commit.message,
        )
        for commit in graph.commits.values()
    }
    branches = {
        branch.id: BranchNode(
            id=branch.id,
            target=branch.target,
            remote_tracking_branch_id=branch.remote_tracking_id,
        )
        for branch in graph.branches.values()
    }
    tags = {tag.id: TagNode(id=tag.id, target=tag.target) for tag in graph.tags.values()}
    head = graph.get_head()
    return TreeModel(
        branches=branches,
        commits=commits,
        tags=tags,
        head=HeadNode(target=head.target),
        origin_tree=export_tree(graph.origin) if graph.origin is not None else None,
    )


def export_tree_for_branch(graph: CommitGraph, branch_name: str) -> TreeModel:
    """Export only ``branch_name`` and its history, with HEAD on it.

    Tags survive only when their commit does.
    """
    tree = export_tree(graph)
    keep = upstream_set(graph, branch_name)
    return TreeModel(
        branches={k: v for k, v in tree.branches.items() if k == branch_name},
        commits={k: v for k, v in tree.commits.items() if k in keep},
        tags={k: v for k, v in tree.tags.items() if v.target in keep},
        head=HeadNode(target=branch_name),
        origin_tree=tree.origin_tree,
    )


def reduce_tree(tree: dict[str, Any]) -> dict[str, Any]:
    """Keep only the fields that define a tree's shape.

    Commit parents are sorted. Works on canonical dicts, recursing into
    ``originTree``.
    """

    def save_only(objects: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
        reduced = {}
        for key, obj in objects.items():
            blank = {}
            for name in fields:
                if obj.get(name) is not None:
                    blank[name] = obj[name]
                elif name in _FIELD_DEFAULTS:
                    blank[name] = _FIELD_DEFAULTS[name]
            if "parents" in blank:
                blank["parents"] = sorted(blank["parents"])
            reduced[key] = blank
        return reduced

    result: dict[str, Any] = {
        "branches": save_only(tree.get("branches", {}), _BRANCH_FIELDS),
        "commits": save_only(tree.get("commits", {}), _COMMIT_FIELDS),
        "tags": save_only(tree.get("tags") or {}, _TAG_FIELDS),
        "HEAD": {"target": tree["HEAD"]["target"], "id": tree["HEAD"].get("id", HEAD_ID)},
    }
    if tree.get("originTree"):
        result["originTree"] = reduce_tree(tree["originTree"])
    return result


def print_tree(tree: TreeModel | CommitGraph) -> str:
    """Reduced canonical string of a tree or graph."""
    if isinstance(tree, CommitGraph):
        tree = export_tree(tree)
    return json.dumps(reduce_tree(tree.to_json_dict()), separators=(",", ":"))


# =============================================================================
# Parsing
# =============================================================================


def _lowercase(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("HEAD"):
        data["HEAD"]["target"] = data["HEAD"]["target"].lower()
    branches = data.get("branches") or {}
    lowered = {}
    for name, branch in branches.items():
        branch["id"] = branch["id"].lower()
        lowered[name.lower()] = branch
    data["branches"] = lowered
    return data


def parse_tree_dict(text: str, *, lowercase: bool = False) -> dict[str, Any]:
    """Decode a tree string (plain or percent-escaped JSON) into a dict.

    ``lowercase`` folds branch names and the HEAD target, as goal strings
    are matched case-insensitively.
    """
    raw = unquote(text.replace("&#x27;", "'").replace("&#x2F;", "/"))
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TreeError.parse_error(str(e)) from e
    if not isinstance(data, dict) or "HEAD" not in data:
        raise TreeError.parse_error("expected an object with a HEAD entry")
    if lowercase:
        _lowercase(data)
        if data.get("originTree"):
            _lowercase(data["originTree"])
    return data


def parse_tree(text: str, *, lowercase: bool = False) -> TreeModel:
    data = parse_tree_dict(text, lowercase=lowercase)
    try:
        return TreeModel.model_validate(data)
    except PydanticValidationError as e:
        raise TreeError.parse_error(str(e)) from e


# =============================================================================
# Import
# =============================================================================


def _check_links(tree: TreeModel) -> None:
    commits = tree.commits
    for commit in commits.values():
        if not ids.is_commit_id(commit.id):
            raise TreeError.invalid(f"commit id {commit.id!r} is not C<n>", commit=commit.id)
        for parent_id in commit.parents:
            if parent_id not in commits:
                raise TreeError.invalid(
                    f"commit {commit.id} has unknown parent {parent_id}",
                    commit=commit.id,
                    parent=parent_id,
                )
    roots = [c.id for c in commits.values() if not c.parents]
    if roots != ["C0"]:
        raise TreeError.invalid("tree needs exactly one root commit, C0", roots=roots)
    for ref in (*tree.branches.values(), *tree.tags.values()):
        if ref.target not in commits:
            raise TreeError.invalid(f"{ref.id} points at unknown commit {ref.target}")
    if tree.head.target not in commits and tree.head.target not in tree.branches:
        raise TreeError.invalid(f"HEAD points at unknown ref {tree.head.target}")


def build_graph(tree: TreeModel, graph: CommitGraph) -> CommitGraph:
    """Populate an empty ``graph`` from ``tree`` (origin excluded)."""
    _check_links(tree)
    try:
        for node in order_for_replay(list(tree.commits.values()), set()):
            graph.make_commit(
                node.parents,
                node.id,
                message=node.commit_message,
                author=node.author,
                create_time=node.create_time,
                root=not node.parents,
            )
        for node in tree.branches.values():
            graph.make_branch(node.id, node.target)
        for node in tree.branches.values():
            if node.remote_tracking_branch_id:
                graph.set_tracking(graph.resolve(node.id).id, node.remote_tracking_branch_id)
        for node in tree.tags.values():
            graph.make_tag(node.id, node.target)
    except GitError as e:
        raise TreeError.invalid(e.message) from e

    target = tree.head.target
    if target in tree.branches:
        graph.make_head(graph.resolve(target).id)
    else:
        graph.make_head(target, detached=True)
    return graph


def load_tree(engine: CommandEngine, tree: TreeModel | str) -> None:
    """Replace the engine's repository (and origin) with ``tree``."""
    if isinstance(tree, str):
        tree = parse_tree(tree)
    graph = engine.graph
    graph.clear()
    build_graph(tree, graph)
    if tree.origin_tree is not None:
        origin = build_graph(tree.origin_tree, CommitGraph(graph.config, graph.messages))
        engine.remote.attach_origin(origin, announce=False)
    log.info(
        "tree.loaded",
        commits=len(graph.commits),
        branches=list(graph.branches),
        origin=tree.origin_tree is not None,
    )


def init_repository(engine: CommandEngine) -> None:
    """Fresh repository: root commit, ``master``, HEAD, then one commit."""
    graph = engine.graph
    graph.clear()
    root = graph.make_commit([], root=True)
    graph.make_branch(MASTER, root.id)
    graph.make_head(MASTER)
    engine.commit()

