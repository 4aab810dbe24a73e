"""Read models returned by version history queries."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from content_stack.models.version import ContentVersion


class DiffSummary(BaseModel):
    """What changed between a version and the one before it."""

    changed_fields: list[str] = Field(default_factory=list)
    added: int = 0
    removed: int = 0
    modified: int = 0
    title_changed: bool = False


class HistoryEntry(BaseModel):
    version: ContentVersion
    creator_name: str | None = None
    diff_summary: DiffSummary


class ElementChange(BaseModel):
    id: str
    before: dict[str, Any]
    after: dict[str, Any]


class VersionComparison(BaseModel):
    """Element-level comparison of two versions of the same content."""

    from_version: ContentVersion
    to_version: ContentVersion
    changed_fields: list[str] = Field(default_factory=list)
    added: list[dict[str, Any]] = Field(default_factory=list)
    removed: list[dict[str, Any]] = Field(default_factory=list)
    modified: list[ElementChange] = Field(default_factory=list)
