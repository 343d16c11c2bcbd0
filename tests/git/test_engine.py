"""Tests for CommandEngine operations, called directly."""

from __future__ import annotations

import pytest

from branchplane.git import (
    CommandEngine,
    DetachedHeadError,
    NoOpResult,
    ProtectedBranchError,
    StateError,
    ValidationError,
)


class TestCommit:
    def test_commit_advances_branch(self, engine: CommandEngine) -> None:
        commit = engine.commit()

        assert commit.id == "C2"
        assert commit.parents == ["C1"]
        assert engine.graph.branches["master"].target == "C2"

    def test_amend_rewrites_head(self, engine: CommandEngine) -> None:
        commit = engine.commit(amend=True)

        assert commit.id == "C1'"
        assert commit.parents == ["C0"]
        assert engine.graph.branches["master"].target == "C1'"

    def test_message_quotes_stripped(self, engine: CommandEngine) -> None:
        commit = engine.commit(message='"fix the thing"')

        assert commit.message == "fix the thing"

    def test_detached_commit_warns(self, engine: CommandEngine) -> None:
        engine.checkout("C1")

        engine.commit()

        assert engine.graph.get_head().target == "C2"
        assert engine.messages.render("git-warning-detached") in engine.graph.advisories


class TestMerge:
    def test_given_diverged_when_merge_then_merge_commit(self, diverged: CommandEngine) -> None:
        result = diverged.merge("bugFix")

        graph = diverged.graph
        assert result.kind == "merge"
        assert result.commit_id == "C4"
        assert graph.commits["C4"].parents == ["C3", "C2"]
        assert graph.commits["C4"].message == 'Merge branch "bugFix" into branch "main"'
        assert graph.branches["master"].target == "C4"

    def test_given_merged_when_merge_then_noop(self, diverged: CommandEngine) -> None:
        with pytest.raises(NoOpResult):
            diverged.merge("C1")

    def test_given_ancestor_when_merge_then_fast_forward(self, engine: CommandEngine) -> None:
        engine.branch("bugFix", "HEAD")
        engine.checkout("bugFix")
        engine.commit()
        engine.checkout("master")

        result = engine.merge("bugFix")

        assert result.kind == "fastforward"
        assert engine.graph.branches["master"].target == "C2"

    def test_given_no_ff_when_merge_then_merge_commit(self, engine: CommandEngine) -> None:
        engine.branch("bugFix", "HEAD")
        engine.checkout("bugFix")
        engine.commit()
        engine.checkout("master")

        result = engine.merge("bugFix", no_ff=True)

        assert result.kind == "merge"
        assert engine.graph.commits[result.commit_id].parents == ["C1", "C2"]


class TestRebase:
    def test_given_diverged_when_rebase_then_replays(self, diverged: CommandEngine) -> None:
        diverged.checkout("bugFix")

        result = diverged.rebase("master", "HEAD")

        graph = diverged.graph
        assert result.kind == "replay"
        assert result.created == ("C2'",)
        assert graph.commits["C2'"].parents == ["C3"]
        assert graph.branches["bugFix"].target == "C2'"
        assert graph.get_head().target == "bugFix"

    def test_given_target_upstream_when_rebase_then_noop_after_checkout(
        self, diverged: CommandEngine
    ) -> None:
        with pytest.raises(NoOpResult, match="up-to-date"):
            diverged.rebase("C1", "bugFix")

        graph = diverged.graph
        assert graph.branches["bugFix"].target == "C2"
        assert graph.get_head().target == "bugFix"
        assert "C2'" not in graph.commits

    def test_given_behind_when_rebase_then_fast_forward(self, engine: CommandEngine) -> None:
        engine.branch("side", "HEAD")
        engine.commit()
        engine.checkout("side")

        result = engine.rebase("master", "HEAD")

        assert result.kind == "fastforward"
        assert engine.graph.branches["side"].target == "C2"

    def test_given_changes_applied_when_rebase_then_noop(self, diverged: CommandEngine) -> None:
        diverged.cherry_pick(["C2"])
        diverged.checkout("bugFix")

        with pytest.raises(NoOpResult):
            diverged.rebase("master", "HEAD")

    def test_merge_commits_are_dropped(self, diverged: CommandEngine) -> None:
        diverged.merge("bugFix")
        diverged.branch("base", "C1")
        diverged.checkout("base")
        diverged.commit()

        result = diverged.rebase("base", "master")

        assert "C4'" not in result.created
        assert set(result.created) == {"C2'", "C3'"}


class TestCherryPickAndRevert:
    def test_cherry_pick_copies_onto_head(self, diverged: CommandEngine) -> None:
        created = diverged.cherry_pick(["bugFix"])

        assert [c.id for c in created] == ["C2'"]
        assert diverged.graph.commits["C2'"].parents == ["C3"]
        assert diverged.graph.branches["master"].target == "C2'"

    def test_cherry_pick_upstream_commit_rejected(self, diverged: CommandEngine) -> None:
        with pytest.raises(ValidationError):
            diverged.cherry_pick(["C1"])

    def test_revert_creates_rewrite(self, engine: CommandEngine) -> None:
        created = engine.revert(["C1"])

        commit = created[0]
        assert commit.id == "C1'"
        assert commit.parents == ["C1"]
        assert commit.message == "Reverting commit C1: Quick Commit. Go Bears!"
        assert engine.graph.branches["master"].target == "C1'"


class TestResetAndCheckout:
    def test_reset_moves_branch(self, engine: CommandEngine) -> None:
        engine.commit()

        engine.reset("HEAD~1")

        assert engine.graph.branches["master"].target == "C1"

    def test_reset_detached_rejected(self, engine: CommandEngine) -> None:
        engine.checkout("C0")

        with pytest.raises(DetachedHeadError, match="Can't reset in detached head"):
            engine.reset("C1")

        assert engine.graph.get_head().target == "C0"

    def test_checkout_tag_detaches(self, engine: CommandEngine) -> None:
        engine.tag("v1", "C0")

        engine.checkout("v1")

        head = engine.graph.get_head()
        assert head.detached
        assert head.target == "C0"

    def test_checkout_previous(self, engine: CommandEngine) -> None:
        engine.checkout("C0")

        engine.checkout_previous()

        head = engine.graph.get_head()
        assert not head.detached
        assert head.target == "master"

    def test_checkout_previous_without_history(self, engine: CommandEngine) -> None:
        with pytest.raises(NoOpResult):
            engine.checkout_previous()


class TestBranchesAndTags:
    def test_force_branch_moves_existing(self, engine: CommandEngine) -> None:
        engine.branch("side", "C0")

        engine.force_branch("side", "C1")

        assert engine.graph.branches["side"].target == "C1"

    def test_force_branch_creates_missing(self, engine: CommandEngine) -> None:
        engine.force_branch("side", "C0")

        assert engine.graph.branches["side"].target == "C0"

    def test_delete_master_rejected(self, engine: CommandEngine) -> None:
        engine.checkout("C0")

        with pytest.raises(ProtectedBranchError):
            engine.delete_branch("master")

    def test_delete_checked_out_rejected(self, engine: CommandEngine) -> None:
        engine.branch("side", "C0")
        engine.checkout("side")

        with pytest.raises(ProtectedBranchError):
            engine.delete_branch("side")

    def test_delete_unknown_tag_rejected(self, engine: CommandEngine) -> None:
        with pytest.raises(ValidationError):
            engine.delete_tag("v9")

    def test_branches_containing(self, diverged: CommandEngine) -> None:
        holders = diverged.branches_containing("C1")

        assert [b.id for b in holders] == ["master", "bugFix"]
        assert [b.id for b in diverged.branches_containing("C2")] == ["bugFix"]


class TestReadOperations:
    def test_describe(self, engine: CommandEngine) -> None:
        engine.commit()
        engine.tag("v1", "C1")

        assert str(engine.describe("HEAD")) == "v1_1_gC2"
        assert str(engine.describe("C1")) == "v1"

    def test_describe_without_tag_upstream(self, engine: CommandEngine) -> None:
        engine.tag("v1", "C1")

        with pytest.raises(StateError):
            engine.describe("C0")

    def test_status(self, engine: CommandEngine) -> None:
        assert engine.status().startswith("# On branch master\n")

    def test_rev_list(self, engine: CommandEngine) -> None:
        assert engine.rev_list(["HEAD"]) == "C1\nC0\n"

    def test_log_entries(self, engine: CommandEngine) -> None:
        text = engine.log(["HEAD"])

        assert "Commit: C1" in text
        assert text.index("Commit: C1") < text.index("Commit: C0")

    def test_show(self, engine: CommandEngine) -> None:
        assert "Commit: C0" in engine.show("C0")


class TestModeSwitch:
    def test_switch_to_hg_prunes_and_advances(self, engine: CommandEngine) -> None:
        engine.branch("side", "C1")
        engine.commit(amend=True)

        changed = engine.set_mode("hg")

        graph = engine.graph
        assert changed
        assert graph.branches["side"].target == "C1'"
        assert "C1" not in graph.commits

    def test_switch_when_already_hg(self, engine: CommandEngine) -> None:
        engine.set_mode("hg")

        assert engine.set_mode("hg") is False


class TestHgRebase:
    def test_rebase_repairs_and_prunes(self, engine: CommandEngine) -> None:
        engine.branch("feature", "HEAD")
        engine.commit()
        engine.checkout("feature")
        engine.commit()
        engine.commit()

        result = engine.hg_rebase("master", "HEAD")

        graph = engine.graph
        assert result.created == ("C3'", "C4'")
        assert graph.commits["C3'"].parents == ["C2"]
        assert graph.branches["feature"].target == "C4'"
        assert "C3" not in graph.commits
        assert "C4" not in graph.commits
