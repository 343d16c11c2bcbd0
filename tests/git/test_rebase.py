"""Tests for the two-phase interactive rebase."""

from __future__ import annotations

import pytest

from branchplane.git import (
    CommandEngine,
    InteractiveRebasePlan,
    NoOpResult,
    ValidationError,
)


@pytest.fixture
def feature(diverged: CommandEngine) -> CommandEngine:
    """bugFix carries C2 and C4 on top of C1; master -> C3. HEAD on bugFix."""
    diverged.checkout("bugFix")
    diverged.commit()
    return diverged


class TestPlanInteractive:
    """First phase: candidates only, graph untouched."""

    def test_given_branch_when_plan_then_candidates_oldest_first(
        self, feature: CommandEngine
    ) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD")

        assert isinstance(plan, InteractiveRebasePlan)
        assert plan.candidates == ("C2", "C4")
        assert plan.target == "C3"
        assert plan.location == "HEAD"
        assert plan.initial_ordering is None

    def test_given_plan_then_graph_unchanged(self, feature: CommandEngine) -> None:
        before = sorted(feature.graph.commits)

        feature.plan_interactive_rebase("master", "HEAD")

        assert sorted(feature.graph.commits) == before
        assert feature.graph.branches["bugFix"].target == "C4"

    def test_given_initial_ordering_then_kept(self, feature: CommandEngine) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD", ["c4", "C2"])

        assert plan.initial_ordering == ("C4", "C2")

    def test_given_nothing_to_rebase_then_noop(self, feature: CommandEngine) -> None:
        with pytest.raises(NoOpResult):
            feature.plan_interactive_rebase("bugFix", "C1")

    def test_merge_commits_are_not_candidates(self, diverged: CommandEngine) -> None:
        diverged.merge("bugFix")
        diverged.branch("base", "C0")

        plan = diverged.plan_interactive_rebase("base", "master")

        assert "C4" not in plan.candidates
        assert plan.candidates[0] == "C1"

    def test_plan_serializes(self, feature: CommandEngine) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD")

        assert plan.to_dict()["candidates"] == ["C2", "C4"]


class TestApplyRebase:
    """Second phase: replay the chosen ordering."""

    def test_reordered(self, feature: CommandEngine) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD")

        result = feature.apply_rebase(plan, ["C4", "C2"])

        graph = feature.graph
        assert result.created == ("C4'", "C2'")
        assert graph.commits["C4'"].parents == ["C3"]
        assert graph.commits["C2'"].parents == ["C4'"]
        assert graph.branches["bugFix"].target == "C2'"

    def test_subset_drops_commits(self, feature: CommandEngine) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD")

        result = feature.apply_rebase(plan, ["C4"])

        assert result.created == ("C4'",)
        assert feature.graph.branches["bugFix"].target == "C4'"

    def test_non_candidate_rejected(self, feature: CommandEngine) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD")

        with pytest.raises(ValidationError):
            feature.apply_rebase(plan, ["C3"])

    def test_empty_ordering_is_noop(self, feature: CommandEngine) -> None:
        plan = feature.plan_interactive_rebase("master", "HEAD")

        with pytest.raises(NoOpResult):
            feature.apply_rebase(plan, [])

    def test_both_phases_with_empty_ordering_keeps_all(self, feature: CommandEngine) -> None:
        result = feature.interactive_rebase("master", "HEAD", [])

        assert result.created == ("C2'", "C4'")
