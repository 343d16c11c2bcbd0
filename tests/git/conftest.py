"""Test fixtures for git module."""

from __future__ import annotations

import pytest

from branchplane.git import CommitGraph


@pytest.fixture
def graph() -> CommitGraph:
    """Bare graph: C0 <- C1, master -> C1, HEAD -> master."""
    g = CommitGraph()
    g.make_commit([], "C0", root=True)
    g.make_commit(["C0"], "C1")
    g.make_branch("master", "C1")
    g.make_head("master")
    return g


@pytest.fixture
def merged_graph() -> CommitGraph:
    """C0 <- C1 <- C2 and C1 <- C3, merged as C4 on master; side -> C3."""
    g = CommitGraph()
    g.make_commit([], "C0", root=True)
    g.make_commit(["C0"], "C1")
    g.make_commit(["C1"], "C2")
    g.make_commit(["C1"], "C3")
    g.make_commit(["C2", "C3"], "C4")
    g.make_branch("master", "C4")
    g.make_branch("side", "C3")
    g.make_head("master")
    return g
