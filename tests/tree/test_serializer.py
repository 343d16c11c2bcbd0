"""Tests for canonical tree export/import."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import pytest

from branchplane.core.errors import ErrorCode, TreeError
from branchplane.git import CommandEngine
from branchplane.tree import (
    default_tree,
    export_tree,
    export_tree_for_branch,
    init_repository,
    load_tree,
    parse_tree,
    print_tree,
    reduce_tree,
)


def _tree_json(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "branches": {"master": {"target": "C1", "id": "master"}},
        "commits": {
            "C0": {"parents": [], "id": "C0", "rootCommit": True},
            "C1": {"parents": ["C0"], "id": "C1"},
        },
        "HEAD": {"target": "master", "id": "HEAD"},
    }
    data.update(overrides)
    return data


class TestExport:
    def test_default_tree_round_trips(self, engine: CommandEngine) -> None:
        assert print_tree(engine.graph) == print_tree(default_tree())

    def test_export_after_commit(self, engine: CommandEngine) -> None:
        engine.commit()

        tree = export_tree(engine.graph)

        assert tree.commits["C2"].parents == ["C1"]
        assert tree.branches["master"].target == "C2"
        assert tree.head.target == "master"
        assert tree.origin_tree is None

    def test_json_keys_are_camel_case(self, engine: CommandEngine) -> None:
        data = export_tree(engine.graph).to_json_dict()

        assert data["commits"]["C0"]["rootCommit"] is True
        assert "commitMessage" in data["commits"]["C1"]
        assert data["HEAD"] == {"id": "HEAD", "target": "master"}
        assert "originTree" not in data

    def test_export_includes_origin(self, engine: CommandEngine) -> None:
        engine.remote.clone()

        data = export_tree(engine.graph).to_json_dict()

        assert data["originTree"]["branches"]["master"]["target"] == "C1"
        assert data["branches"]["master"]["remoteTrackingBranchID"] == "o/master"

    def test_export_for_branch(self, diverged: CommandEngine) -> None:
        tree = export_tree_for_branch(diverged.graph, "bugFix")

        assert list(tree.branches) == ["bugFix"]
        assert sorted(tree.commits) == ["C0", "C1", "C2"]
        assert tree.head.target == "bugFix"


class TestReduce:
    def test_keeps_shape_fields_only(self) -> None:
        data = _tree_json()
        data["commits"]["C1"]["author"] = "someone"
        data["commits"]["C1"]["type"] = "commit"

        reduced = reduce_tree(data)

        assert reduced["commits"]["C1"] == {"parents": ["C0"], "id": "C1"}
        assert reduced["branches"]["master"] == {
            "target": "C1",
            "id": "master",
            "remoteTrackingBranchID": None,
        }
        assert reduced["tags"] == {}

    def test_parents_sorted(self) -> None:
        data = _tree_json()
        data["commits"]["C2"] = {"parents": ["C1", "C0"], "id": "C2"}

        assert reduce_tree(data)["commits"]["C2"]["parents"] == ["C0", "C1"]


class TestParse:
    def test_escaped_input(self) -> None:
        text = quote(json.dumps(_tree_json()))

        tree = parse_tree(text)

        assert tree.head.target == "master"
        assert sorted(tree.commits) == ["C0", "C1"]

    def test_lowercase(self) -> None:
        data = _tree_json(
            branches={"BugFix": {"target": "C1", "id": "BugFix"}},
            HEAD={"target": "BugFix", "id": "HEAD"},
        )

        tree = parse_tree(json.dumps(data), lowercase=True)

        assert list(tree.branches) == ["bugfix"]
        assert tree.branches["bugfix"].id == "bugfix"
        assert tree.head.target == "bugfix"

    def test_tracking_id_alias(self) -> None:
        data = _tree_json()
        data["branches"]["master"]["remoteTrackingBranchId"] = "o/master"

        tree = parse_tree(json.dumps(data))

        assert tree.branches["master"].remote_tracking_branch_id == "o/master"

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"branches": {}}'])
    def test_unparseable(self, text: str) -> None:
        with pytest.raises(TreeError) as exc_info:
            parse_tree(text)

        assert exc_info.value.code == ErrorCode.TREE_PARSE_ERROR


class TestLoad:
    def test_load_replaces_repository(self, diverged: CommandEngine) -> None:
        load_tree(diverged, json.dumps(_tree_json()))

        assert sorted(diverged.graph.commits) == ["C0", "C1"]
        assert sorted(diverged.graph.branches) == ["master"]

    def test_load_detached_head(self, engine: CommandEngine) -> None:
        load_tree(engine, json.dumps(_tree_json(HEAD={"target": "C0", "id": "HEAD"})))

        head = engine.graph.get_head()
        assert head.detached
        assert head.target == "C0"

    def test_load_with_origin_creates_tracking(self, engine: CommandEngine) -> None:
        origin = _tree_json(
            branches={"master": {"target": "C2", "id": "master"}},
        )
        origin["commits"]["C2"] = {"parents": ["C1"], "id": "C2"}

        load_tree(engine, json.dumps(_tree_json(originTree=origin)))

        local = engine.graph
        assert local.origin is not None
        assert local.branches["o/master"].target == "C1"
        assert local.branches["master"].remote_tracking_id == "o/master"
        assert local.advisories == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"branches": {"master": {"target": "C9", "id": "master"}}},
            {"HEAD": {"target": "nowhere", "id": "HEAD"}},
            {
                "commits": {
                    "C0": {"parents": [], "id": "C0", "rootCommit": True},
                    "C1": {"parents": ["C7"], "id": "C1"},
                }
            },
            {
                "commits": {
                    "C0": {"parents": [], "id": "C0", "rootCommit": True},
                    "C1": {"parents": [], "id": "C1"},
                }
            },
            {
                "branches": {"master": {"target": "X1", "id": "master"}},
                "commits": {
                    "C0": {"parents": [], "id": "C0", "rootCommit": True},
                    "X1": {"parents": ["C0"], "id": "X1"},
                },
            },
        ],
    )
    def test_invalid_trees(self, engine: CommandEngine, overrides: dict[str, Any]) -> None:
        with pytest.raises(TreeError) as exc_info:
            load_tree(engine, json.dumps(_tree_json(**overrides)))

        assert exc_info.value.code == ErrorCode.TREE_INVALID

    def test_commit_ids_outside_rewrite_scheme_rejected(self, engine: CommandEngine) -> None:
        commits = {
            "C0": {"parents": [], "id": "C0", "rootCommit": True},
            "C1x": {"parents": ["C0"], "id": "C1x"},
        }
        tree = _tree_json(
            commits=commits, branches={"master": {"target": "C1x", "id": "master"}}
        )

        with pytest.raises(TreeError) as exc_info:
            load_tree(engine, json.dumps(tree))

        assert exc_info.value.details["commit"] == "C1x"

    def test_init_repository(self, engine: CommandEngine) -> None:
        init_repository(engine)

        graph = engine.graph
        assert sorted(graph.commits) == ["C0", "C1"]
        assert graph.commits["C0"].root
        assert graph.branches["master"].target == "C1"
