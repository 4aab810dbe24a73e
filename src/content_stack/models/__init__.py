"""Data models for Cosmos DB document types."""

from content_stack.models.collection import BranchInfo, Collection
from content_stack.models.content import Content, ContentStatus, Element, ElementType
from content_stack.models.history import DiffSummary, HistoryEntry, VersionComparison
from content_stack.models.lock import LockInfo, LockSource, LockState
from content_stack.models.release import (
    BatchFailure,
    BatchResult,
    PurgeSummary,
    ReleaseContent,
    ReleaseSummary,
)
from content_stack.models.version import ContentVersion, VersionSnapshot, version_id

__all__ = [
    "BatchFailure",
    "BatchResult",
    "BranchInfo",
    "Collection",
    "Content",
    "ContentStatus",
    "ContentVersion",
    "DiffSummary",
    "Element",
    "ElementType",
    "HistoryEntry",
    "LockInfo",
    "LockSource",
    "LockState",
    "PurgeSummary",
    "ReleaseContent",
    "ReleaseSummary",
    "VersionComparison",
    "VersionSnapshot",
    "version_id",
]
