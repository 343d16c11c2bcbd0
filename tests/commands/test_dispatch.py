"""Tests for execute, delegation chains, the command tables and Invocation."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from pydantic import ValidationError as PydanticValidationError

from branchplane.commands import (
    TABLES,
    Command,
    CommandOutcome,
    CommandTable,
    Delegation,
    Invocation,
    execute_all,
    git_commands,
    hg_commands,
    run_delegations,
)
from branchplane.core.logging import get_request_id
from branchplane.git import CommandEngine
from branchplane.git.errors import (
    ArgumentCountError,
    CommandNotSupportedError,
    GitError,
    UnsupportedOptionError,
)

Run = Callable[..., CommandOutcome]


class TestCommandModel:
    def test_canonical_keys(self) -> None:
        command = Command.model_validate(
            {"method": "checkout", "generalArgs": ["C0"], "optionsMap": {"-b": ["x"]}}
        )

        assert command.dialect == "git"
        assert command.general_args == ["C0"]
        assert command.options == {"-b": ["x"]}

    def test_field_names(self) -> None:
        command = Command(dialect="hg", method="commit", general_args=[], options={})

        assert command.dialect == "hg"

    def test_unknown_dialect_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            Command.model_validate({"dialect": "svn", "method": "commit"})

    def test_frozen(self) -> None:
        command = Command(method="commit")

        with pytest.raises(PydanticValidationError):
            command.method = "merge"  # type: ignore[misc]


class TestExecute:
    def test_failure_leaves_graph_untouched(self, engine: CommandEngine, run: Run) -> None:
        run("branch", "side")
        run("commit")

        outcome = run("cherry-pick", "C0", "C2")

        assert outcome.status == "error"
        assert outcome.changes == {}
        assert engine.graph.branches["master"].target == "C2"
        assert sorted(engine.graph.commits) == ["C0", "C1", "C2"]

    def test_error_outcome_dict(self, run: Run) -> None:
        outcome = run("checkout", "nowhere")

        assert outcome.to_dict() == {
            "status": "error",
            "warnings": [],
            "error": {
                "kind": "validation",
                "message": "The ref nowhere does not exist or is unknown",
            },
        }

    def test_noop_keeps_result_text(self, run: Run) -> None:
        outcome = run("status")

        assert outcome.ok
        assert outcome.result.startswith("# On branch master")
        assert outcome.origin_changes is None

    def test_origin_changes_reported(self, run: Run) -> None:
        run("clone")

        outcome = run("fakeTeamwork")

        assert outcome.origin_changes["created_commits"] == ["C2"]
        assert outcome.changes["created_commits"] == []

    def test_request_id_cleared(self, run: Run) -> None:
        run("commit")

        assert get_request_id() is None

    def test_execute_all_continues_past_failures(self, engine: CommandEngine) -> None:
        outcomes = execute_all(
            engine,
            [
                Command(method="checkout", general_args=["nowhere"]),
                Command(method="commit"),
                Command(dialect="hg", method="status"),
            ],
        )

        assert [o.status for o in outcomes] == ["error", "success", "error"]
        assert engine.graph.branches["master"].target == "C2"


class TestDelegation:
    def test_single_delegation_keeps_arguments(self, engine: CommandEngine) -> None:
        inv = Invocation("up", ["C0"], {})

        run_delegations(engine, inv, Delegation("checkout"))

        assert engine.graph.get_head().target == "C0"

    def test_single_delegation_overrides(self, engine: CommandEngine) -> None:
        inv = Invocation("bookmark", ["ignored"], {"-r": ["C0"]})

        run_delegations(engine, inv, Delegation("checkout", args=[], options={"-b": ["feat"]}))

        assert engine.graph.get_head().target == "feat"
        assert inv.args == []

    def test_multi_step_delegation(self, engine: CommandEngine) -> None:
        inv = Invocation("x", ["stale"], {"-f": []})

        run_delegations(
            engine,
            inv,
            [Delegation("branch", args=["side", "C0"]), Delegation("checkout", args=["side"])],
        )

        graph = engine.graph
        assert graph.branches["side"].target == "C0"
        assert graph.get_head().target == "side"

    def test_delegation_result_passes_through(self, engine: CommandEngine) -> None:
        inv = Invocation("summary", [], {})

        with pytest.raises(GitError) as exc_info:
            run_delegations(engine, inv, Delegation("branch"))

        assert exc_info.value.kind == "noop"


class TestTables:
    def test_dialect_tables(self) -> None:
        assert TABLES == {"git": git_commands, "hg": hg_commands}

    def test_aliases_share_a_spec(self) -> None:
        assert hg_commands.get("ci") is hg_commands.get("commit")
        assert "bookmarks" in hg_commands

    def test_unknown_command(self) -> None:
        with pytest.raises(CommandNotSupportedError) as exc_info:
            git_commands.get("stash")

        assert exc_info.value.message == "The command git stash isn't supported, sorry!"

    def test_names_sorted(self) -> None:
        names = git_commands.names()

        assert names == sorted(names)
        assert {"commit", "rebase", "fakeTeamwork"} <= set(names)

    def test_check_options(self) -> None:
        spec = git_commands.get("merge")

        spec.check_options({"--no-ff": []})
        with pytest.raises(UnsupportedOptionError):
            spec.check_options({"--squash": []})

    def test_register(self) -> None:
        table = CommandTable("git")

        @table.register("noop", options=("-q",), aliases=("nop",))
        def handler(engine, inv):
            return None

        spec = table.get("nop")
        assert spec.handler is handler
        assert spec.name == "noop"
        assert spec.options == frozenset({"-q"})


class TestInvocation:
    def test_values_are_copies(self) -> None:
        inv = Invocation("merge", [], {"--no-ff": ["C1"]})

        inv.values("--no-ff").append("C2")

        assert inv.options["--no-ff"] == ["C1"]

    def test_values_first_present(self) -> None:
        inv = Invocation("branch", [], {"-D": ["x"]})

        assert inv.values("-d", "-D") == ["x"]
        assert inv.values("-f") == []

    def test_bounds_messages(self) -> None:
        inv = Invocation("merge", [], {})

        with pytest.raises(ArgumentCountError, match="at least 1 argument"):
            inv.validate_arg_bounds([], 1, 1)
        with pytest.raises(ArgumentCountError, match="with merge -i"):
            inv.validate_arg_bounds(["a", "b"], 0, 1, "-i")

    def test_implied_head(self) -> None:
        inv = Invocation("rebase", [], {})
        args = ["master"]

        inv.two_args_implied_head(args)

        assert args == ["master", "HEAD"]

    @pytest.mark.parametrize(
        ("arg", "expected"),
        [
            (".", "HEAD"),
            (".~1", "HEAD~1"),
            (".^", "HEAD^"),
            ("..", ".."),
            ("C1", "C1"),
        ],
    )
    def test_map_dot_to_head(self, arg: str, expected: str) -> None:
        inv = Invocation("export", [arg], {"-b": [arg]})

        inv.map_dot_to_head()

        assert inv.args == [expected]
        assert inv.options == {"-b": [expected]}

    def test_option_r_rewrites(self) -> None:
        inv = Invocation("graft", ["C2"], {"-r": ["C1"]})

        inv.prepend_option_r()
        assert inv.args == ["C1", "C2"]

        inv.append_option_r()
        assert inv.args == ["C1", "C2", "C1"]
