"""Commit id rewrite scheme.

Base ids look like ``C<n>``. Every rewrite (amend, rebase, cherry-pick,
revert) appends a prime up to three, then switches to caret notation::

    C4 -> C4' -> C4'' -> C4''' -> C4'^4 -> C4'^5 ...
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_ID_RE = re.compile(r"^C(\d+)('{0,3})(?:'\^(\d+))?$")
_COMMIT_SHAPED_RE = re.compile(r"^[Cc]\d+$")
_BASE_RE = re.compile(r"^(C\d+)")


def _parse(commit_id: str) -> tuple[int, int]:
    match = _ID_RE.match(commit_id)
    if match is None:
        raise ValueError(f"Not a commit id: {commit_id!r}")
    number, primes, caret = match.groups()
    if caret is not None:
        if primes:
            raise ValueError(f"Not a commit id: {commit_id!r}")
        return int(number), int(caret)
    return int(number), len(primes)


def is_commit_id(value: str) -> bool:
    """True if value follows the ``C<n>`` rewrite scheme."""
    try:
        _parse(value)
    except ValueError:
        return False
    return True


def is_commit_shaped(name: str) -> bool:
    """True for names like ``c12`` that would shadow a commit id."""
    return _COMMIT_SHAPED_RE.match(name) is not None


def rewrite_depth(commit_id: str) -> int:
    """Number of rewrites applied to the base id."""
    return _parse(commit_id)[1]


def base_id(commit_id: str) -> str:
    """Strip the rewrite suffix: ``C3'^5`` -> ``C3``."""
    match = _BASE_RE.match(commit_id)
    if match is None:
        return commit_id
    return match.group(1)


def bump_id(commit_id: str) -> str:
    """Next rewrite of an id."""
    number, depth = _parse(commit_id)
    return format_id(number, depth + 1)


def format_id(number: int, depth: int = 0) -> str:
    if depth <= 3:
        return f"C{number}" + "'" * depth
    return f"C{number}'^{depth}"


def id_sort_key(commit_id: str) -> tuple[int, int]:
    """Canonical order: by base number, then rewrite depth.

    Rewritten copies sort immediately after their source.
    """
    return _parse(commit_id)


def sorted_ids(commit_ids: Iterable[str], *, reverse: bool = False) -> list[str]:
    return sorted(commit_ids, key=id_sort_key, reverse=reverse)
