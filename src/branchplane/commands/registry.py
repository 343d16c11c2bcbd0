"""Static command tables.

Handlers register with a decorator at import time; the tables are never
modified after that.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from branchplane.git.errors import CommandNotSupportedError, UnsupportedOptionError

if TYPE_CHECKING:
    from branchplane.commands.models import Dialect, Invocation
    from branchplane.git.engine import CommandEngine

# Handler signature: (engine, invocation) -> None | display text | plan | delegation(s)
HandlerFn = Callable[["CommandEngine", "Invocation"], Any]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Handler, aliases and accepted options of a registered command."""

    dialect: Dialect
    name: str
    handler: HandlerFn
    options: frozenset[str]

    def check_options(self, options: dict[str, list[str]]) -> None:
        for option in options:
            if option not in self.options:
                raise UnsupportedOptionError(option)


class CommandTable:
    """Commands of one dialect, looked up by name or alias."""

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self._commands: dict[str, CommandSpec] = {}

    def register(
        self,
        name: str,
        *,
        options: tuple[str, ...] = (),
        aliases: tuple[str, ...] = (),
    ) -> Callable[[HandlerFn], HandlerFn]:
        """Decorator to register a command handler.

        Usage:
            @git_commands.register("merge", options=("--no-ff",))
            def merge(engine: CommandEngine, inv: Invocation) -> None:
                ...
        """

        def decorator(fn: HandlerFn) -> HandlerFn:
            spec = CommandSpec(self.dialect, name, fn, frozenset(options))
            for key in (name, *aliases):
                self._commands[key] = spec
            return fn

        return decorator

    def get(self, name: str) -> CommandSpec:
        spec = self._commands.get(name)
        if spec is None:
            raise CommandNotSupportedError(self.dialect, name)
        return spec

    def names(self) -> list[str]:
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands
