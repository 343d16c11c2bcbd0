"""Fixtures for CLI tests."""

from collections.abc import Generator
from pathlib import Path

import pytest


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Empty working directory with quiet logging and no global config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BRANCHPLANE__LOGGING__LEVEL", "ERROR")
    monkeypatch.setattr("branchplane.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml")
    yield tmp_path
