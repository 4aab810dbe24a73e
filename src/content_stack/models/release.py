"""Result models for release creation, branch lookups and batch operations."""

from __future__ import annotations

from pydantic import BaseModel, Field

from content_stack.models.collection import BranchInfo
from content_stack.models.content import Content
from content_stack.models.version import ContentVersion


class BatchFailure(BaseModel):
    """One content that failed during a batch run.

    ``affected`` counts entries the unit had already changed before failing.
    """

    item_id: str
    error_type: str
    message: str
    affected: int = 0


class BatchResult(BaseModel):
    """Outcome of running one unit of work per content across a collection."""

    total: int = 0
    succeeded: list[str] = Field(default_factory=list)
    failures: list[BatchFailure] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    affected: int = 0
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.skipped


class ReleaseSummary(BaseModel):
    collection_id: str
    branch: BranchInfo
    copy_contents: bool = False
    result: BatchResult


class PurgeSummary(BaseModel):
    collection_id: str
    result: BatchResult

    @property
    def deleted_count(self) -> int:
        return self.result.affected


class ReleaseContent(BaseModel):
    """A content paired with its frozen version in a branch."""

    content: Content
    version: ContentVersion
