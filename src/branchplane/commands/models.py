"""Command contract: structured input, typed outcome, per-run argument state."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from branchplane.git.errors import ArgumentCountError, GitError
from branchplane.git.models import HEAD_ID, InteractiveRebasePlan

Dialect = Literal["git", "hg"]
OutcomeStatus = Literal["success", "noop", "error", "pending"]

_DOT_RE = re.compile(r"^\.(?=$|[~^])")


class Command(BaseModel):
    """One already-parsed command.

    Accepts both the snake_case field names and the ``generalArgs`` /
    ``optionsMap`` keys of the canonical JSON form.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    dialect: Dialect = Field(default="git", description="Command dialect.")
    method: str = Field(..., description="Command name, e.g. 'commit' or 'cherry-pick'.")
    general_args: list[str] = Field(default_factory=list, alias="generalArgs")
    options: dict[str, list[str]] = Field(default_factory=dict, alias="optionsMap")


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Result of ``execute``. Errors are values here, never exceptions."""

    status: OutcomeStatus
    result: str | None = None
    warnings: tuple[str, ...] = ()
    error_kind: str | None = None
    error_message: str | None = None
    changes: dict[str, Any] = field(default_factory=dict)
    origin_changes: dict[str, Any] | None = None
    plan: InteractiveRebasePlan | None = None

    @property
    def ok(self) -> bool:
        return self.status != "error"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status, "warnings": list(self.warnings)}
        if self.result is not None:
            data["result"] = self.result
        if self.error_kind is not None:
            data["error"] = {"kind": self.error_kind, "message": self.error_message}
        if self.changes:
            data["changes"] = self.changes
        if self.origin_changes:
            data["origin_changes"] = self.origin_changes
        if self.plan is not None:
            data["plan"] = self.plan.to_dict()
        return data


@dataclass(frozen=True, slots=True)
class Delegation:
    """Forward to a git command.

    ``args``/``options`` of None keep the invocation's current values.
    """

    method: str
    args: list[str] | None = None
    options: dict[str, list[str]] | None = None


@dataclass(slots=True)
class Invocation:
    """Mutable argument state of one command run, shared along a delegation chain."""

    method: str
    args: list[str]
    options: dict[str, list[str]]

    @classmethod
    def from_command(cls, command: Command) -> Invocation:
        return cls(
            method=command.method,
            args=list(command.general_args),
            options={name: list(values) for name, values in command.options.items()},
        )

    def has(self, *names: str) -> bool:
        return any(name in self.options for name in names)

    def values(self, *names: str) -> list[str]:
        """Values of the first present option among ``names``."""
        for name in names:
            if name in self.options:
                return list(self.options[name])
        return []

    # =========================================================================
    # Argument Bounds
    # =========================================================================

    def validate_arg_bounds(
        self,
        args: list[str],
        lower: int,
        upper: int | None = None,
        option: str | None = None,
    ) -> None:
        what = f"with git {self.method}" if option is None else f"with {self.method} {option}"
        if upper is not None and len(args) > upper:
            raise ArgumentCountError(what, upper, too_many=True)
        if len(args) < lower:
            raise ArgumentCountError(what, lower, too_many=False)

    def one_arg_implied_head(self, args: list[str], option: str | None = None) -> None:
        self.validate_arg_bounds(args, 0, 1, option)
        if not args:
            args.append(HEAD_ID)

    def two_args_implied_head(self, args: list[str], option: str | None = None) -> None:
        self.validate_arg_bounds(args, 1, 2, option)
        if len(args) == 1:
            args.append(HEAD_ID)

    def two_args_for_origin(self, args: list[str], option: str | None = None) -> None:
        self.validate_arg_bounds(args, 0, 2, option)

    @staticmethod
    def implied_head(args: list[str], count: int) -> None:
        if len(args) == count:
            args.append(HEAD_ID)

    def accept_no_general_args(self, message: str) -> None:
        if self.args:
            raise GitError(message)

    # =========================================================================
    # Rewrites
    # =========================================================================

    def append_option_r(self) -> None:
        self.args = self.args + self.values("-r")

    def prepend_option_r(self) -> None:
        self.args = self.values("-r") + self.args

    def map_dot_to_head(self) -> None:
        """Rewrite a leading ``.`` (alone or before ``~``/``^``) to HEAD."""
        self.args = [_DOT_RE.sub(HEAD_ID, arg) for arg in self.args]
        self.options = {
            name: [_DOT_RE.sub(HEAD_ID, value) for value in values]
            for name, values in self.options.items()
        }
