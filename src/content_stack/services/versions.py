"""Version store with append-only, collision-free numbering of content snapshots."""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING

from content_stack.errors import ConflictError, NotFoundError
from content_stack.models.version import ContentVersion, VersionSnapshot

if TYPE_CHECKING:
    from content_stack.config import VersioningConfig
    from content_stack.database.repositories.contents import ContentRepository
    from content_stack.database.repositories.versions import VersionRepository
    from content_stack.models.content import Content

logger = logging.getLogger(__name__)


class VersionStore:
    """Owns version numbering and snapshot capture for every content.

    Numbering is a per-content critical section: writers in this process
    queue on an ``asyncio.Lock`` keyed by content id, and writers in other
    processes are caught by the store itself, because a version's id is
    derived from its number and a second insert of the same number fails.
    A lost race re-reads the maximum and retries with exponential backoff.
    """

    def __init__(
        self,
        versions: VersionRepository,
        contents: ContentRepository,
        *,
        retry_budget: int = 5,
        retry_backoff_seconds: float = 0.05,
    ) -> None:
        self._versions = versions
        self._contents = contents
        self._retry_budget = retry_budget
        self._retry_backoff_seconds = retry_backoff_seconds
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_config(
        cls,
        versions: VersionRepository,
        contents: ContentRepository,
        config: VersioningConfig,
    ) -> VersionStore:
        return cls(
            versions,
            contents,
            retry_budget=config.retry_budget,
            retry_backoff_seconds=config.retry_backoff_seconds,
        )

    def _lock_for(self, content_id: str) -> asyncio.Lock:
        lock = self._locks.get(content_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[content_id] = lock
        return lock

    async def create_version(
        self,
        content: Content,
        actor: str | None = None,
        note: str | None = None,
        *,
        increment: bool = True,
        branch: str | None = None,
        is_branch_end: bool = False,
    ) -> ContentVersion:
        """Append a snapshot of ``content``'s live fields as a new version.

        ``increment=False`` is reserved for version 1, written together with
        the content itself; it fails with ConflictError if version 1 exists.
        """
        snapshot = VersionSnapshot.from_content(content)
        lock = self._lock_for(content.id)
        async with lock:
            for attempt in range(1, self._retry_budget + 1):
                number = await self._versions.get_max_number(content.id) + 1 if increment else 1
                entry = ContentVersion(
                    content_id=content.id,
                    version_number=number,
                    snapshot=snapshot,
                    branch=branch,
                    is_branch_end=is_branch_end,
                    created_by=actor,
                    change_note=note,
                )
                try:
                    await self._versions.insert(entry)
                except ConflictError:
                    if not increment:
                        raise
                    delay = self._retry_backoff_seconds * 2 ** (attempt - 1)
                    logger.warning(
                        "Version %d of content %s taken by another writer"
                        " (attempt %d/%d), retrying in %.3fs",
                        number,
                        content.id,
                        attempt,
                        self._retry_budget,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                if increment:
                    await self._contents.advance_current_version(content.id, number)
                content.current_version = max(content.current_version, number)
                logger.info("Created version %d of content %s", number, content.id)
                return entry

        raise ConflictError(
            f"Could not assign a version number to content {content.id}"
            f" after {self._retry_budget} attempts",
            details={"content_id": content.id, "attempts": self._retry_budget},
        )

    async def get_version(self, content: Content, version_number: int) -> ContentVersion | None:
        return await self._versions.get_by_number(content.id, version_number)

    async def latest_version(self, content: Content) -> ContentVersion:
        """Return the newest version; every stored content has at least one."""
        latest = await self._versions.get_latest(content.id)
        if latest is None:
            raise NotFoundError("ContentVersion", f"{content.id}@latest")
        return latest

    async def list_versions(self, content: Content) -> list[ContentVersion]:
        """Return every remaining version, newest first."""
        return await self._versions.list_by_content(content.id)
