"""Content document model and its element tree."""

from __future__ import annotations

import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from content_stack.models.base import DocumentBase
from content_stack.models.lock import LockState

LIVE_FIELDS = ("title", "slug", "status", "elements", "metadata")


class ContentStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ElementType(StrEnum):
    TEXT = "text"
    MEDIA = "media"
    SVG = "svg"
    KATEX = "katex"
    HTML = "html"
    JSON = "json"
    XML = "xml"
    WRAPPER = "wrapper"

    @property
    def can_have_children(self) -> bool:
        return self is ElementType.WRAPPER


class Element(BaseModel):
    """A node in a content's element tree, individually lockable."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content_id: str
    parent_id: str | None = None
    type: ElementType = ElementType.TEXT
    data: dict[str, Any] = Field(default_factory=dict)
    order: int = 0
    lock: LockState | None = None


class Content(DocumentBase):
    """A versionable document belonging to exactly one collection."""

    collection_id: str
    title: str = ""
    slug: str = ""
    status: ContentStatus = ContentStatus.DRAFT
    elements: list[Element] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    current_version: int = 1
    lock: LockState | None = None

    def find_element(self, element_id: str) -> Element | None:
        return next((el for el in self.elements if el.id == element_id), None)
