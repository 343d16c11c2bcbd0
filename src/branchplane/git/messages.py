"""Human-readable text for results and advisories.

Engine logic never branches on these strings; they are looked up only to
render display text. Callers may pass overrides to ``Messages`` to localize
or reword any key.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

DEFAULT_MESSAGES: dict[str, str] = {
    # results
    "git-result-uptodate": "Branch already up-to-date",
    "git-result-fastforward": "Fast forwarding...",
    "git-result-nothing": "Nothing to do...",
    "git-merge-msg": "Merge {target} into {current}",
    "git-revert-msg": "Reverting {old_commit}: {old_msg}",
    # status
    "git-status-detached": "Detached head!",
    "git-status-onbranch": "On branch {branch}",
    "git-status-readytocommit": "Ready to commit! (as always in this demo)",
    # warnings
    "git-warning-detached": "Warning!! Detached HEAD state",
    "git-warning-add": "No need to add files in this demo",
    "git-warning-hard": "The default behavior is a --hard reset, feel free to omit that option!",
    "branch-name-short": (
        "Sorry, we need to keep branch names short for the visuals. Your branch name "
        'was truncated to {limit} characters, resulting in "{branch}"'
    ),
    "tracking-set": 'local branch "{local}" set to track remote branch "{remote}"',
    "hg-prune-tree": (
        "Warning! Mercurial does aggressive garbage collection and thus needs to prune your tree"
    ),
    "hg-a-option": "The -A option is not needed for this app, just commit away!",
    # errors
    "git-error-rebase-none": (
        "No commits to rebase! Everything is a merge commit or changes already applied"
    ),
    "git-error-staging": (
        "There is no concept of adding / staging files, so that option or command is invalid!"
    ),
    "git-error-reset-detached": "Can't reset in detached head! Use checkout if you want to move",
    "git-error-already-exists": (
        "The commit {commit} already exists in your changes set, aborting!"
    ),
    "git-error-no-general-args": "That command accepts no general arguments",
    "git-error-options": "Those options you specified are incompatible or incorrect",
    "git-error-tag": "There is no tag named {tag}",
    "git-error-describe-none": "No tags found upstream",
    "git-error-branch-exists": "That branch id either matches a commit hash or already exists!",
    "git-error-interactive-subset": (
        "Interactive rebase order must be a subset of the commits to rebase: {allowed}"
    ),
    "git-error-origin-fetch-no-ff": (
        "Your origin branch is out of sync with the remote branch and fetch cannot be performed"
    ),
    "git-error-origin-push-no-ff": (
        "The remote repository has diverged from your local repository, so uploading your "
        "changes is not a simple fast forward (and thus your push was rejected). Please pull "
        "down the new changes in the remote repository, incorporate them into this branch, "
        "and try again. You can do so with git pull or git pull --rebase"
    ),
    "git-error-remote-branch": "You cannot execute that command on a remote branch",
    "git-error-checkout-current": "You cannot fetch to the currently checked out branch!",
    "git-error-tag-push": "You cannot push a tag, only branches",
    "git-error-pull-no-tracking": (
        "The current branch is not tracking a remote branch, so pull needs a source"
    ),
    "hg-error-no-status": (
        "There is no status command for this app, since there is no staging of files. "
        "Try hg summary instead"
    ),
    "hg-error-log-no-follow": "hg log without -f is currently not supported, use -f",
}


class Messages:
    """Message catalog with ``str.format`` placeholders."""

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        self._catalog = {**DEFAULT_MESSAGES, **(overrides or {})}

    def render(self, key: str, **params: Any) -> str:
        template = self._catalog.get(key)
        if template is None:
            return key
        return template.format(**params) if params else template

    def __contains__(self, key: object) -> bool:
        return key in self._catalog
