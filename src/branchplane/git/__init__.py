"""Commit graph simulation module."""

from branchplane.git.engine import CommandEngine, clean_message
from branchplane.git.errors import (
    ArgumentCountError,
    BadRelativeRefError,
    CommandNotSupportedError,
    DetachedHeadError,
    GitError,
    InvalidBranchNameError,
    NoOpResult,
    NotFastForwardError,
    OriginExistsError,
    OriginRequiredError,
    ProtectedBranchError,
    RefExistsError,
    RefNotFoundError,
    StateError,
    UnsupportedOptionError,
    UpToDateError,
    ValidationError,
)
from branchplane.git.graph import MASTER, CommitGraph
from branchplane.git.messages import DEFAULT_MESSAGES, Messages
from branchplane.git.models import (
    HEAD_ID,
    Branch,
    Commit,
    DescribeResult,
    GraphChanges,
    Head,
    HeadTarget,
    InteractiveRebasePlan,
    MergeResult,
    RebasePlan,
    RebaseResult,
    Ref,
    Tag,
)
from branchplane.git.remote import RemoteSyncEngine
from branchplane.git.revisions import RevisionRange

__all__ = [
    # Main classes
    "CommandEngine",
    "CommitGraph",
    "RemoteSyncEngine",
    "RevisionRange",
    "Messages",
    "DEFAULT_MESSAGES",
    "clean_message",
    # Models
    "HEAD_ID",
    "MASTER",
    "Branch",
    "Commit",
    "DescribeResult",
    "GraphChanges",
    "Head",
    "HeadTarget",
    "InteractiveRebasePlan",
    "MergeResult",
    "RebasePlan",
    "RebaseResult",
    "Ref",
    "Tag",
    # Errors
    "GitError",
    "ValidationError",
    "StateError",
    "NoOpResult",
    "ArgumentCountError",
    "BadRelativeRefError",
    "CommandNotSupportedError",
    "DetachedHeadError",
    "InvalidBranchNameError",
    "NotFastForwardError",
    "OriginExistsError",
    "OriginRequiredError",
    "ProtectedBranchError",
    "RefExistsError",
    "RefNotFoundError",
    "UnsupportedOptionError",
    "UpToDateError",
]
