"""Tests for log-style revision ranges."""

from __future__ import annotations

import pytest

from branchplane.git import CommandEngine, RefNotFoundError, RevisionRange


def _ids(rng: RevisionRange) -> list[str]:
    return [commit.id for commit in rng]


class TestRevisionRange:
    @pytest.mark.parametrize(
        "specifiers",
        [["bugFix..master"], ["master", "^bugFix"], ["^bugFix", "master"]],
    )
    def test_exclusion(self, diverged: CommandEngine, specifiers: list[str]) -> None:
        assert _ids(RevisionRange(diverged.graph, specifiers)) == ["C3"]

    def test_empty_side_means_head(self, diverged: CommandEngine) -> None:
        assert _ids(RevisionRange(diverged.graph, ["..bugFix"])) == ["C2"]
        assert _ids(RevisionRange(diverged.graph, ["bugFix.."])) == ["C3"]

    def test_union_newest_first(self, diverged: CommandEngine) -> None:
        rng = RevisionRange(diverged.graph, ["master", "bugFix"])

        assert _ids(rng) == ["C3", "C2", "C1", "C0"]
        assert len(rng) == 4

    def test_no_specifiers(self, diverged: CommandEngine) -> None:
        assert len(RevisionRange(diverged.graph, [])) == 0

    def test_unknown_ref(self, diverged: CommandEngine) -> None:
        with pytest.raises(RefNotFoundError):
            RevisionRange(diverged.graph, ["nope..master"])

    def test_format(self, diverged: CommandEngine) -> None:
        rng = RevisionRange(diverged.graph, ["bugFix..master"])

        assert rng.format(lambda c: f"<{c.id}>") == "<C3>"
