"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from pathlib import Path

# Insert local src directory at the beginning of sys.path
# This ensures that the local branchplane package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of branchplane modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("branchplane"):
        del sys.modules[module_name]

from collections.abc import Callable  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from branchplane.commands import Command, CommandOutcome, execute  # noqa: E402
from branchplane.git import CommandEngine  # noqa: E402
from branchplane.tree import default_tree, export_tree, load_tree, to_tree  # noqa: E402

Run = Callable[..., CommandOutcome]


@pytest.fixture
def engine() -> CommandEngine:
    """Engine loaded with the default tree: C0 <- C1, master -> C1, HEAD -> master."""
    eng = CommandEngine()
    load_tree(eng, default_tree())
    return eng


@pytest.fixture
def diverged(engine: CommandEngine) -> CommandEngine:
    """bugFix -> C2 and master -> C3, both on C1. HEAD on master."""
    engine.branch("bugFix", "HEAD")
    engine.checkout("bugFix")
    engine.commit()
    engine.checkout("master")
    engine.commit()
    return engine


@pytest.fixture
def run(engine: CommandEngine) -> Run:
    """Execute one structured command against ``engine``.

    Usage: ``run("checkout", "bugFix")`` or ``run("branch", options={"-d": ["x"]})``.
    """

    def _run(
        method: str,
        *args: str,
        options: dict[str, list[str]] | None = None,
        dialect: str = "git",
    ) -> CommandOutcome:
        command = Command(
            dialect=dialect,  # type: ignore[arg-type]
            method=method,
            general_args=list(args),
            options=options or {},
        )
        return execute(engine, command)

    return _run


@pytest.fixture
def tree_of() -> Callable[[CommandEngine], dict[str, Any]]:
    """Reduced tree of an engine's graph (and origin)."""

    def _tree_of(eng: CommandEngine) -> dict[str, Any]:
        return to_tree(export_tree(eng.graph))

    return _tree_of
