"""Log-style revision specifiers.

``A..B``
    ancestors of B that are not ancestors of A
``^A``
    exclude ancestors of A
``A``
    include ancestors of A

An empty side of a range means ``HEAD``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from branchplane.git.algorithms import upstream_set
from branchplane.git.ids import sorted_ids
from branchplane.git.models import HEAD_ID, Commit

if TYPE_CHECKING:
    from branchplane.git.graph import CommitGraph

_RANGE_RE = re.compile(r"^(.*)\.\.(.*)$")


class RevisionRange:
    """Resolved set of commits for a list of specifiers, newest first."""

    def __init__(self, graph: CommitGraph, specifiers: Iterable[str]) -> None:
        self._graph = graph
        self.tips_to_include: list[str] = []
        self.tips_to_exclude: list[str] = []
        for specifier in specifiers:
            self._classify(specifier)

        excluded: set[str] = set()
        for tip in self.tips_to_exclude:
            excluded |= upstream_set(graph, tip)
        included: set[str] = set()
        for tip in self.tips_to_include:
            included |= upstream_set(graph, tip)

        self.revisions: list[Commit] = [
            graph.commits[commit_id] for commit_id in sorted_ids(included - excluded, reverse=True)
        ]

    def _classify(self, specifier: str) -> None:
        match = _RANGE_RE.match(specifier)
        if match is not None:
            self.tips_to_exclude.append(match.group(1) or HEAD_ID)
            self.tips_to_include.append(match.group(2) or HEAD_ID)
        elif specifier.startswith("^"):
            self.tips_to_exclude.append(specifier[1:])
        else:
            self.tips_to_include.append(specifier)

    def __iter__(self):
        return iter(self.revisions)

    def __len__(self) -> int:
        return len(self.revisions)

    def format(self, formatter: Callable[[Commit], str]) -> str:
        return "".join(formatter(commit) for commit in self.revisions)
