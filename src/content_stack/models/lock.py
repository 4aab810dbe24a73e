"""Lock state stored on lockable documents and the resolved lock view."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class LockSource(StrEnum):
    """Which level of the containment chain holds the effective lock."""

    SELF = "self"
    CONTENT = "content"
    COLLECTION = "collection"


class LockState(BaseModel):
    """A lock set on one collection, content or element."""

    locked_by: str | None = None
    locked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reason: str | None = None


class LockInfo(BaseModel):
    """Effective lock of an entity, annotated with where it comes from."""

    is_locked: bool = True
    locked_by: str | None = None
    locked_at: datetime | None = None
    reason: str | None = None
    source: LockSource = LockSource.SELF

    @classmethod
    def from_state(cls, state: LockState, source: LockSource) -> LockInfo:
        return cls(
            locked_by=state.locked_by,
            locked_at=state.locked_at,
            reason=state.reason,
            source=source,
        )
