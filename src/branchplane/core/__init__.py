"""Core module exports."""

from branchplane.core.errors import (
    BranchPlaneError,
    ConfigError,
    ErrorCode,
    InternalError,
    TreeError,
)
from branchplane.core.logging import (
    clear_request_id,
    command_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "BranchPlaneError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "TreeError",
    # Logging
    "clear_request_id",
    "command_context",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
