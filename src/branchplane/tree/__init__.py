"""Canonical tree format: serialization and goal comparison."""

from branchplane.tree.compare import ComparePolicy, TreeCompare, to_tree, trees_equal
from branchplane.tree.schema import (
    DEFAULT_TREE,
    BranchNode,
    CommitNode,
    HeadNode,
    TagNode,
    TreeModel,
)
from branchplane.tree.serializer import (
    build_graph,
    default_tree,
    export_tree,
    export_tree_for_branch,
    init_repository,
    load_tree,
    parse_tree,
    print_tree,
    reduce_tree,
)

__all__ = [
    # Comparison
    "ComparePolicy",
    "TreeCompare",
    "to_tree",
    "trees_equal",
    # Schema
    "DEFAULT_TREE",
    "BranchNode",
    "CommitNode",
    "HeadNode",
    "TagNode",
    "TreeModel",
    # Serialization
    "build_graph",
    "default_tree",
    "export_tree",
    "export_tree_for_branch",
    "init_repository",
    "load_tree",
    "parse_tree",
    "print_tree",
    "reduce_tree",
]
