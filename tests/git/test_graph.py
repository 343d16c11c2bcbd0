"""Tests for CommitGraph: resolution, naming, mutation and transactions."""

from __future__ import annotations

import pytest

from branchplane.git import (
    BadRelativeRefError,
    Branch,
    Commit,
    CommitGraph,
    GraphChanges,
    Head,
    InvalidBranchNameError,
    NoOpResult,
    RefExistsError,
    RefNotFoundError,
)
from branchplane.git.graph import canonical_branch_name, unescape


class TestResolve:
    """Ref spec resolution."""

    def test_literal_ids(self, graph: CommitGraph) -> None:
        assert isinstance(graph.resolve("C1"), Commit)
        assert isinstance(graph.resolve("master"), Branch)
        assert isinstance(graph.resolve("HEAD"), Head)

    def test_lowercase_commit_id(self, graph: CommitGraph) -> None:
        assert graph.resolve("c1").id == "C1"

    def test_main_is_master(self, graph: CommitGraph) -> None:
        assert graph.resolve("main").id == "master"

    @pytest.mark.parametrize(
        ("spec", "expected"),
        [("HEAD^", "C0"), ("master~1", "C0"), ("C1^1", "C0"), ("HEAD~0", "C1")],
    )
    def test_relative_refs(self, graph: CommitGraph, spec: str, expected: str) -> None:
        assert graph.resolve(spec).id == expected

    def test_relative_past_root_raises(self, graph: CommitGraph) -> None:
        with pytest.raises(BadRelativeRefError):
            graph.resolve("master~2")

    def test_second_parent(self, merged_graph: CommitGraph) -> None:
        assert merged_graph.resolve("master^2").id == "C3"
        assert merged_graph.resolve("master^").id == "C2"

    def test_unknown_ref_raises(self, graph: CommitGraph) -> None:
        with pytest.raises(RefNotFoundError):
            graph.resolve("nope")

    def test_get_commit_follows_head_and_branch(self, graph: CommitGraph) -> None:
        assert graph.get_commit("HEAD").id == "C1"

    def test_one_before_commit_of_attached_head_is_branch(self, graph: CommitGraph) -> None:
        assert graph.one_before_commit("HEAD").id == "master"

    def test_resolve_name(self, graph: CommitGraph) -> None:
        assert graph.resolve_name("HEAD") == 'branch "main"'
        assert graph.resolve_name("C0") == "commit C0"


class TestHelpers:
    def test_unescape(self) -> None:
        assert unescape("C1&#x27;") == "C1'"
        assert unescape("a&#x2F;b") == "a/b"

    def test_canonical_branch_name(self) -> None:
        assert canonical_branch_name("main") == "master"
        assert canonical_branch_name("maintain") == "maintain"


class TestBranchNames:
    """Branch and tag name validation."""

    @pytest.mark.parametrize("name", ["o/foo", "c5", "myhead", "-x", "a..b"])
    def test_invalid_names(self, graph: CommitGraph, name: str) -> None:
        with pytest.raises(InvalidBranchNameError):
            graph.validate_branch_name(name)

    @pytest.mark.parametrize("name", ["bugFix", "side-1", "feat/x"])
    def test_valid_names(self, graph: CommitGraph, name: str) -> None:
        assert graph.validate_branch_name(name) == name

    def test_whitespace_is_removed(self, graph: CommitGraph) -> None:
        assert graph.validate_branch_name("bug fix") == "bugfix"

    def test_long_name_truncated_with_advisory(self, graph: CommitGraph) -> None:
        name = graph.validate_branch_name("averylongname")

        assert name == "averylong"
        assert len(graph.advisories) == 1
        assert "averylong" in graph.advisories[0]

    def test_existing_name_rejected(self, graph: CommitGraph) -> None:
        with pytest.raises(InvalidBranchNameError):
            graph.validate_and_make_branch("master", "C0")


class TestIds:
    def test_unique_id_skips_taken(self, graph: CommitGraph) -> None:
        assert graph.unique_id() == "C2"
        assert graph.unique_id() == "C3"

    def test_rewrite_id_is_unique_across_peers(self, graph: CommitGraph) -> None:
        origin = CommitGraph()
        origin.make_commit([], "C0", root=True)
        origin.make_commit(["C0"], "C1'")
        graph.attach_origin(origin)

        assert graph.rewrite_id("C1") == "C1''"

    def test_most_recent_rewrite(self, graph: CommitGraph) -> None:
        graph.make_commit(["C0"], "C1'")
        graph.make_commit(["C0"], "C1''")

        assert graph.most_recent_rewrite("C1") == "C1''"
        assert graph.most_recent_rewrite("C0") == "C0"


class TestMutation:
    def test_make_commit_with_unknown_parent(self, graph: CommitGraph) -> None:
        with pytest.raises(RefNotFoundError):
            graph.make_commit(["C9"])

    def test_make_commit_with_taken_id(self, graph: CommitGraph) -> None:
        with pytest.raises(RefExistsError):
            graph.make_commit(["C0"], "master")

    def test_children_index(self, merged_graph: CommitGraph) -> None:
        assert sorted(merged_graph.children("C1")) == ["C2", "C3"]
        assert merged_graph.children("C4") == []

    def test_set_target_location_moves_attached_branch(self, graph: CommitGraph) -> None:
        graph.set_target_location("HEAD", "C0")

        assert graph.branches["master"].target == "C0"
        assert graph.changes.moved_refs == {"master": ("C1", "C0")}

    def test_set_target_location_detached_moves_head(self, graph: CommitGraph) -> None:
        graph.set_head("C1", detached=True)

        graph.set_target_location("HEAD", "C0")

        assert graph.get_head().target == "C0"
        assert graph.branches["master"].target == "C1"

    def test_set_target_location_on_commit_is_noop(self, graph: CommitGraph) -> None:
        graph.set_target_location("C1", "C0")

        assert graph.changes.moved_refs == {}
        assert graph.commits["C1"].parents == ["C0"]

    def test_deleting_checked_out_branch_returns_head_to_master(
        self, graph: CommitGraph
    ) -> None:
        graph.make_branch("side", "C0")
        graph.set_head("side")

        graph.delete_branch("side")

        assert graph.get_head().target == "master"
        assert "side" in graph.changes.deleted_refs

    def test_reparent_updates_children(self, merged_graph: CommitGraph) -> None:
        merged_graph.reparent("C3", ["C2"])

        assert merged_graph.children("C1") == ["C2"]
        assert sorted(merged_graph.children("C2")) == ["C3", "C4"]

    def test_repair_parent_points_at_newest_rewrite(self, graph: CommitGraph) -> None:
        graph.make_commit(["C1"], "C2")
        graph.make_commit(["C0"], "C1'")

        assert graph.repair_parent("C2")
        assert graph.commits["C2"].parents == ["C1'"]

    def test_advance_to_latest_rewrites(self, graph: CommitGraph) -> None:
        graph.make_commit(["C0"], "C1'")

        assert graph.advance_to_latest_rewrites(["master"])
        assert graph.branches["master"].target == "C1'"


class TestPrune:
    def test_prune_removes_unreachable(self, graph: CommitGraph) -> None:
        graph.make_commit(["C1"], "C2")

        removed = graph.prune()

        assert removed == ["C2"]
        assert "C2" not in graph.commits
        assert graph.children("C1") == []
        assert len(graph.advisories) == 1

    def test_tags_keep_commits(self, graph: CommitGraph) -> None:
        graph.make_commit(["C1"], "C2")
        graph.make_tag("v1", "C2")

        assert graph.prune() == []
        assert graph.advisories == []


class TestTransaction:
    def test_failure_rolls_back(self, graph: CommitGraph) -> None:
        with pytest.raises(RefNotFoundError), graph.transaction():
            graph.make_commit(["C1"])
            graph.set_target_location("HEAD", "C2")
            graph.resolve("nope")

        assert "C2" not in graph.commits
        assert graph.branches["master"].target == "C1"
        assert graph.children("C1") == []
        assert graph.unique_id() == "C2"

    def test_noop_keeps_changes(self, graph: CommitGraph) -> None:
        with pytest.raises(NoOpResult), graph.transaction():
            graph.make_commit(["C1"], "C2")
            raise NoOpResult("done")

        assert "C2" in graph.commits

    def test_failure_rolls_back_origin(self, graph: CommitGraph) -> None:
        origin = CommitGraph()
        origin.make_commit([], "C0", root=True)
        graph.attach_origin(origin)

        with pytest.raises(RefNotFoundError), graph.transaction():
            origin.make_commit(["C0"], "C5")
            graph.resolve("nope")

        assert "C5" not in origin.commits


class TestGraphChanges:
    def test_move_back_to_start_is_dropped(self) -> None:
        changes = GraphChanges()
        changes.record_move("master", "C1", "C2")
        changes.record_move("master", "C2", "C1")

        assert changes.moved_refs == {}
        assert changes.is_empty

    def test_moves_collapse_to_first_origin(self) -> None:
        changes = GraphChanges()
        changes.record_move("master", "C1", "C2")
        changes.record_move("master", "C2", "C3")

        assert changes.moved_refs == {"master": ("C1", "C3")}
        assert changes.stale_refs == ["master"]
