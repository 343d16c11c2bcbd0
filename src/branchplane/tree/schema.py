"""Pydantic models of the canonical tree format.

Field aliases are the camelCase keys of the JSON form. Unknown keys (``type``,
``children``, visual state) are ignored on input.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_CREATE_TIME = "Mon Nov 05 2012 00:56:47 GMT-0800 (PST)"


class _Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CommitNode(_Node):
    """A commit with parent ids only; children are never serialized."""

    id: str
    parents: list[str] = Field(default_factory=list)
    root_commit: bool | None = Field(default=None, alias="rootCommit")
    author: str | None = None
    create_time: str | None = Field(default=None, alias="createTime")
    commit_message: str | None = Field(default=None, alias="commitMessage")


class BranchNode(_Node):
    id: str
    target: str
    remote_tracking_branch_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "remoteTrackingBranchID",
            "remoteTrackingBranchId",
            "remote_tracking_branch_id",
        ),
        serialization_alias="remoteTrackingBranchID",
    )


class TagNode(_Node):
    id: str
    target: str


class HeadNode(_Node):
    id: str = "HEAD"
    target: str


class TreeModel(_Node):
    """One repository; ``originTree`` nests the peer origin when one exists."""

    branches: dict[str, BranchNode] = Field(default_factory=dict)
    commits: dict[str, CommitNode] = Field(default_factory=dict)
    tags: dict[str, TagNode] = Field(default_factory=dict)
    head: HeadNode = Field(alias="HEAD")
    origin_tree: TreeModel | None = Field(default=None, alias="originTree")

    def to_json_dict(self) -> dict[str, object]:
        """Canonical JSON-ready dict."""
        return self.model_dump(by_alias=True, exclude_none=True)


DEFAULT_TREE = TreeModel.model_validate(
    {
        "branches": {"master": {"target": "C1", "id": "master"}},
        "commits": {
            "C0": {
                "parents": [],
                "author": "Peter Cottle",
                "createTime": DEFAULT_CREATE_TIME,
                "commitMessage": "Quick Commit. Go Bears!",
                "id": "C0",
                "rootCommit": True,
            },
            "C1": {
                "parents": ["C0"],
                "author": "Peter Cottle",
                "createTime": DEFAULT_CREATE_TIME,
                "commitMessage": "Quick Commit. Go Bears!",
                "id": "C1",
            },
        },
        "HEAD": {"id": "HEAD", "target": "master"},
    }
)
