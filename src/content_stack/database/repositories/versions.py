"""Repository for the content_versions container (partitioned by /content_id)."""

from __future__ import annotations

from content_stack.database.repositories.base import BaseRepository
from content_stack.models.version import ContentVersion, version_id

_UNPROTECTED = "(NOT IS_DEFINED(c.is_branch_end) OR c.is_branch_end = false)"


class VersionRepository(BaseRepository[ContentVersion]):
    """Provide data access for the content_versions container.

    Version ids are derived from ``(content_id, version_number)``, so
    inserting a number that is already taken fails with ``ConflictError``.
    """

    container_name = "content_versions"
    model_class = ContentVersion

    async def insert(self, entry: ContentVersion) -> ContentVersion:
        """Insert a version entry under its derived id."""
        entry.id = version_id(entry.content_id, entry.version_number)
        return await self.create(entry)

    async def get_by_number(self, content_id: str, version_number: int) -> ContentVersion | None:
        """Point-read a single version."""
        return await self.get(version_id(content_id, version_number), content_id)

    async def get_max_number(self, content_id: str) -> int:
        """Return the highest version number for a content, or 0 if none exist."""
        value = await self.scalar(
            "SELECT VALUE MAX(c.version_number) FROM c WHERE c.content_id = @content_id",
            [{"name": "@content_id", "value": content_id}],
            partition_key=content_id,
        )
        return int(value) if value is not None else 0

    async def get_latest(self, content_id: str) -> ContentVersion | None:
        """Fetch the entry with the highest version number."""
        results = await self.query(
            "SELECT TOP 1 * FROM c WHERE c.content_id = @content_id"
            " ORDER BY c.version_number DESC",
            [{"name": "@content_id", "value": content_id}],
            partition_key=content_id,
        )
        return results[0] if results else None

    async def list_by_content(self, content_id: str) -> list[ContentVersion]:
        """Fetch every entry of a content, newest first."""
        return await self.query(
            "SELECT * FROM c WHERE c.content_id = @content_id ORDER BY c.version_number DESC",
            [{"name": "@content_id", "value": content_id}],
            partition_key=content_id,
        )

    async def list_by_branch(self, content_id: str, branch: str) -> list[ContentVersion]:
        """Fetch the entries of a content tagged with ``branch``, newest first."""
        return await self.query(
            "SELECT * FROM c WHERE c.content_id = @content_id AND c.branch = @branch"
            " ORDER BY c.version_number DESC",
            [
                {"name": "@content_id", "value": content_id},
                {"name": "@branch", "value": branch},
            ],
            partition_key=content_id,
        )

    async def mark_branch_end(self, entry: ContentVersion, branch: str) -> ContentVersion:
        """Tag an existing entry as the frozen state of ``branch``."""
        await self.patch(
            entry.id,
            entry.content_id,
            [
                {"op": "set", "path": "/branch", "value": branch},
                {"op": "set", "path": "/is_branch_end", "value": True},
            ],
        )
        return entry.model_copy(update={"branch": branch, "is_branch_end": True})

    async def list_purgeable(self, content_id: str, below: int) -> list[ContentVersion]:
        """Fetch unprotected entries numbered below ``below``."""
        return await self.query(
            "SELECT * FROM c WHERE c.content_id = @content_id"
            " AND c.version_number < @below"
            f" AND {_UNPROTECTED}",
            [
                {"name": "@content_id", "value": content_id},
                {"name": "@below", "value": below},
            ],
            partition_key=content_id,
        )

    async def count_purgeable(self, content_id: str, below: int) -> int:
        """Count unprotected entries numbered below ``below``."""
        value = await self.scalar(
            "SELECT VALUE COUNT(1) FROM c WHERE c.content_id = @content_id"
            " AND c.version_number < @below"
            f" AND {_UNPROTECTED}",
            [
                {"name": "@content_id", "value": content_id},
                {"name": "@below", "value": below},
            ],
            partition_key=content_id,
        )
        return int(value or 0)

    async def remove(self, entry: ContentVersion) -> None:
        await self.delete(entry.id, entry.content_id)
