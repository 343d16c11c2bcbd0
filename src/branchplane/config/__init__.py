"""Config module exports."""

from branchplane.config.loader import BranchPlaneSettings, load_config
from branchplane.config.models import (
    BranchPlaneConfig,
    EngineConfig,
    LoggingConfig,
    LogOutputConfig,
)

__all__ = [
    "load_config",
    "BranchPlaneConfig",
    "BranchPlaneSettings",
    "EngineConfig",
    "LoggingConfig",
    "LogOutputConfig",
]
