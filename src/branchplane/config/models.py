"""Typed configuration sections.

Each section is addressable from the environment as
``BRANCHPLANE__<SECTION>__<KEY>``, e.g. ``BRANCHPLANE__ENGINE__REMOTE_PREFIX=up/``.
Layering lives in ``branchplane.config.loader``.
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """One log sink. Only YAML can describe more than one."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # or "stdout", or an absolute file path
    level: LogLevel | None = None  # None: root level

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        resolved = Path(v).expanduser()
        if resolved.is_absolute():
            return str(resolved)
        raise ValueError(f"Log file must be an absolute path, got {v!r}")


class LoggingConfig(BaseModel):
    """Root level plus the list of sinks events are rendered to."""

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every graph mutation.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class EngineConfig(BaseModel):
    """Command engine configuration.

    Env vars:
        BRANCHPLANE__ENGINE__BRANCH_NAME_MAX_LENGTH: Longer names are truncated
        BRANCHPLANE__ENGINE__REMOTE_PREFIX: Prefix reserved for remote-tracking branches
        BRANCHPLANE__ENGINE__DEFAULT_AUTHOR: Author recorded on new commits
    """

    branch_name_max_length: int = Field(
        default=9,
        description="Branch and tag names longer than this are truncated with an advisory.",
    )
    remote_prefix: str = Field(
        default="o/",
        description="Reserved name prefix marking remote-tracking branches.",
    )
    default_author: str = Field(
        default="Peter Cottle",
        description="Author recorded on commits created by the engine.",
    )
    default_message: str = Field(
        default="Quick Commit. Go Bears!",
        description="Message recorded on commits created without -m.",
    )
    display_main_alias: bool = Field(
        default=True,
        description="Show the 'master' branch as 'main' in display text.",
    )

    @field_validator("branch_name_max_length")
    @classmethod
    def validate_max_length(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Branch name length limit must be positive, got {v}")
        return v

    @field_validator("remote_prefix")
    @classmethod
    def validate_remote_prefix(cls, v: str) -> str:
        if not re.fullmatch(r"\w+/", v):
            raise ValueError(f"Remote prefix must look like 'name/', got {v!r}")
        return v


class BranchPlaneConfig(BaseModel):
    """Resolved configuration handed to the CLI and the command engine."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
