"""ContentVersion document model: immutable, numbered content snapshots."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from content_stack.models.base import DocumentBase

if TYPE_CHECKING:
    from content_stack.models.content import Content


def version_id(content_id: str, version_number: int) -> str:
    """Return the document id of a version; unique per content and number."""
    return f"{content_id}:{version_number}"


class VersionSnapshot(BaseModel):
    """Deep copy of a content's live fields at the time a version was taken.

    Element locks are not part of history and are left out of ``elements``.
    """

    title: str = ""
    slug: str = ""
    status: str = "draft"
    elements: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_content(cls, content: Content) -> VersionSnapshot:
        return cls(
            title=content.title,
            slug=content.slug,
            status=content.status.value,
            elements=[
                el.model_dump(mode="json", exclude={"lock"}, exclude_none=True)
                for el in content.elements
            ],
            metadata=copy.deepcopy(content.metadata),
        )


class ContentVersion(DocumentBase):
    """An immutable snapshot of a content at one version number."""

    content_id: str
    version_number: int
    snapshot: VersionSnapshot = Field(default_factory=VersionSnapshot)
    branch: str | None = None
    is_branch_end: bool = False
    created_by: str | None = None
    change_note: str | None = None
