"""Collection document model, a grouping of contents with shared branches."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from content_stack.models.base import DocumentBase
from content_stack.models.lock import LockState


class BranchInfo(BaseModel):
    """A named checkpoint registered on a collection."""

    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_by: str | None = None


class Collection(DocumentBase):
    """A named grouping of contents sharing configuration and an optional lock."""

    name: str
    slug: str = ""
    description: str = ""
    branches: list[BranchInfo] = Field(default_factory=list)
    # Most recently registered branch, the default for release lookups.
    # Only release creation tags versions; edits stay untagged.
    current_branch: str | None = None
    lock: LockState | None = None

    @property
    def branch_names(self) -> list[str]:
        return [branch.name for branch in self.branches]

    def find_branch(self, name: str) -> BranchInfo | None:
        return next((branch for branch in self.branches if branch.name == name), None)
