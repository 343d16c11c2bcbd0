"""Internal components for graph operations - not part of public API."""

from branchplane.git._internal.planners import (
    CheckoutPlanner,
    CheckoutType,
    MergePlanner,
    MergeType,
)
from branchplane.git._internal.preconditions import (
    require_attached_head,
    require_branch,
    require_deletable_branch,
    require_local_branch,
    require_not_checked_out,
    require_not_upstream_of_head,
    require_origin,
    require_ref,
    require_remote_branch,
    require_tracking_branch,
)
from branchplane.git._internal.rebase import RebaseFlow, RebasePlanner

__all__ = [
    "CheckoutPlanner",
    "CheckoutType",
    "MergePlanner",
    "MergeType",
    "RebaseFlow",
    "RebasePlanner",
    "require_attached_head",
    "require_branch",
    "require_deletable_branch",
    "require_local_branch",
    "require_not_checked_out",
    "require_not_upstream_of_head",
    "require_origin",
    "require_ref",
    "require_remote_branch",
    "require_tracking_branch",
]
