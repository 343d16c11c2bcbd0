"""Goal matching between two canonical trees.

Trees are compared on reduced fields only (commit ids, parents and root flag,
branch targets and tracking, tags, HEAD target). The first argument of every
comparison is the tree under test, the second the goal.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import StrEnum
from typing import Any

import structlog

from branchplane.git import ids
from branchplane.tree.schema import TreeModel
from branchplane.tree.serializer import parse_tree_dict, reduce_tree

log = structlog.get_logger()

Tree = dict[str, Any]
TreeInput = str | TreeModel | Mapping[str, Any]
BranchAssert = Callable[[dict[str, int]], bool]
_CommitEq = Callable[[dict[str, Any] | None, dict[str, Any] | None], bool]


class ComparePolicy(StrEnum):
    """How much of a tree must match the goal."""

    ALL_BRANCHES_AND_HEAD = "all_branches_and_head"
    ONLY_MASTER = "only_master"
    ONLY_BRANCHES = "only_branches"
    ALL_BRANCHES_ENFORCE_CLEANUP = "all_branches_enforce_cleanup"
    ALL_BRANCHES_HASH_AGNOSTIC = "all_branches_hash_agnostic"
    ONLY_MASTER_HASH_AGNOSTIC = "only_master_hash_agnostic"
    ONLY_MASTER_HASH_AGNOSTIC_WITH_ASSERTS = "only_master_hash_agnostic_with_asserts"


def to_tree(tree: TreeInput) -> Tree:
    """Reduced dict form of a tree string, model or dict.

    Strings are treated as goal text: branch names and HEAD are lower-cased.
    """
    if isinstance(tree, str):
        data = parse_tree_dict(tree, lowercase=True)
    elif isinstance(tree, TreeModel):
        data = tree.to_json_dict()
    else:
        data = copy.deepcopy(dict(tree))
    return reduce_tree(data)


def _exact(a: dict[str, Any] | None, b: dict[str, Any] | None) -> bool:
    return a == b


def _strip_hash(commit: dict[str, Any] | None) -> dict[str, Any]:
    if commit is None:
        return {}
    return {**commit, "id": ids.base_id(commit["id"]), "parents": None}


def _hash_agnostic(a: dict[str, Any] | None, b: dict[str, Any] | None) -> bool:
    return _strip_hash(a) == _strip_hash(b)


def _recurse_compare(current: Tree, goal: Tree, is_equal: _CommitEq = _exact) -> _CommitEq:
    """Parent-by-parent walk; a parent present on only one side is a mismatch."""
    confirmed: set[tuple[str, str]] = set()

    def compare(a: dict[str, Any] | None, b: dict[str, Any] | None) -> bool:
        if not is_equal(a, b):
            return False
        if a is None or b is None:
            return a is b
        key = (a["id"], b["id"])
        if key in confirmed:
            return True
        a_parents, b_parents = a.get("parents", []), b.get("parents", [])
        for index in range(max(len(a_parents), len(b_parents))):
            child_a = current["commits"].get(a_parents[index]) if index < len(a_parents) else None
            child_b = goal["commits"].get(b_parents[index]) if index < len(b_parents) else None
            if not compare(child_a, child_b):
                return False
        confirmed.add(key)
        return True

    return compare


# =============================================================================
# Comparisons
# =============================================================================


def compare_branch(current: Tree, goal: Tree, name: str) -> bool:
    """Branch objects equal and their histories structurally identical."""
    branch_a = current["branches"].get(name)
    branch_b = goal["branches"].get(name)
    if branch_a != branch_b:
        return False
    if branch_a is None:
        return True
    compare = _recurse_compare(current, goal)
    return compare(current["commits"].get(branch_a["target"]), goal["commits"].get(branch_b["target"]))


def compare_branches(current: Tree, goal: Tree, names: Iterable[str]) -> bool:
    return all(compare_branch(current, goal, name) for name in names)


def compare_all_branches(current: Tree, goal: Tree) -> bool:
    """Every goal branch matches. Extra branches in ``current`` are ignored."""
    return compare_branches(current, goal, goal["branches"])


def compare_all_branches_enforce_cleanup(current: Tree, goal: Tree) -> bool:
    """Like ``compare_all_branches`` but extra branches also fail."""
    return compare_branches(current, goal, {**current["branches"], **goal["branches"]})


def compare_tags(current: Tree, goal: Tree) -> bool:
    return current["tags"] == goal["tags"]


def compare_all_branches_and_head(current: Tree, goal: Tree) -> bool:
    return (
        current["HEAD"]["target"] == goal["HEAD"]["target"]
        and compare_all_branches(current, goal)
        and compare_tags(current, goal)
    )


def compare_branches_hash_agnostic(current: Tree, goal: Tree, names: Iterable[str]) -> bool:
    """Compare branches with every id stripped of its rewrite suffix."""
    compare = _recurse_compare(current, goal, _hash_agnostic)
    for name in names:
        branch_a = current["branches"].get(name)
        branch_b = goal["branches"].get(name)
        if branch_a is None or branch_b is None:
            return False
        stripped_a = {**branch_a, "target": ids.base_id(branch_a["target"])}
        stripped_b = {**branch_b, "target": ids.base_id(branch_b["target"])}
        if stripped_a != stripped_b:
            return False
        if not compare(
            current["commits"].get(branch_a["target"]),
            goal["commits"].get(branch_b["target"]),
        ):
            return False
    return True


def compare_all_branches_hash_agnostic(current: Tree, goal: Tree) -> bool:
    names = {**current["branches"], **goal["branches"]}
    return compare_branches_hash_agnostic(current, goal, names)


def rewrite_depths(tree: Tree, branch_name: str) -> dict[str, int] | None:
    """Map base id -> rewrite depth for every commit upstream of a branch."""
    branch = tree["branches"].get(branch_name)
    if branch is None:
        return None
    data: dict[str, int] = {}
    queue = [branch["target"]]
    while queue:
        commit_id = queue.pop()
        data[ids.base_id(commit_id)] = ids.rewrite_depth(commit_id)
        queue.extend(tree["commits"][commit_id]["parents"])
    return data


def eval_asserts(tree: Tree, asserts: Mapping[str, Sequence[BranchAssert]]) -> bool:
    """Run caller predicates over each branch's rewrite-depth map.

    A predicate that raises counts as failed.
    """
    for branch_name, predicates in asserts.items():
        data = rewrite_depths(tree, branch_name)
        if data is None:
            return False
        for predicate in predicates:
            try:
                if not predicate(data):
                    return False
            except Exception as e:
                log.warning("compare.assert_failed", branch=branch_name, error=str(e))
                return False
    return True


def trees_equal(current: TreeInput, goal: TreeInput) -> bool:
    """Whole reduced trees identical."""
    return to_tree(current) == to_tree(goal)


# =============================================================================
# Dispatch
# =============================================================================


class TreeCompare:
    """Policy-driven goal check, applied to origin trees too."""

    def __init__(
        self,
        policy: ComparePolicy = ComparePolicy.ALL_BRANCHES_AND_HEAD,
        *,
        origin_policy: ComparePolicy | None = None,
        goal_asserts: Mapping[str, Sequence[BranchAssert]] | None = None,
    ) -> None:
        self.policy = policy
        self.origin_policy = origin_policy
        self.goal_asserts = goal_asserts or {}

    def matches(self, goal: TreeInput, current: TreeInput) -> bool:
        goal_tree = to_tree(goal)
        current_tree = to_tree(current)
        if ("originTree" in goal_tree) != ("originTree" in current_tree):
            return False
        result = self._shallow(self.policy, current_tree, goal_tree)
        if result and "originTree" in goal_tree:
            result = self._shallow(
                self.origin_policy or self.policy,
                current_tree["originTree"],
                goal_tree["originTree"],
            )
        log.debug("compare.completed", policy=self.policy.value, result=result)
        return result

    @property
    def only_master(self) -> bool:
        return self.policy in (
            ComparePolicy.ONLY_MASTER,
            ComparePolicy.ONLY_MASTER_HASH_AGNOSTIC,
            ComparePolicy.ONLY_MASTER_HASH_AGNOSTIC_WITH_ASSERTS,
        )

    def _shallow(self, policy: ComparePolicy, current: Tree, goal: Tree) -> bool:
        if policy == ComparePolicy.ONLY_MASTER:
            return compare_branch(current, goal, "master")
        if policy == ComparePolicy.ALL_BRANCHES_ENFORCE_CLEANUP:
            return compare_all_branches_enforce_cleanup(current, goal)
        if policy == ComparePolicy.ONLY_BRANCHES:
            return compare_all_branches(current, goal)
        if policy == ComparePolicy.ALL_BRANCHES_HASH_AGNOSTIC:
            return compare_all_branches_hash_agnostic(current, goal)
        if policy == ComparePolicy.ONLY_MASTER_HASH_AGNOSTIC:
            return compare_branches_hash_agnostic(current, goal, ["master"])
        if policy == ComparePolicy.ONLY_MASTER_HASH_AGNOSTIC_WITH_ASSERTS:
            return compare_branches_hash_agnostic(current, goal, ["master"]) and eval_asserts(
                current, self.goal_asserts
            )
        return compare_all_branches_and_head(current, goal)
