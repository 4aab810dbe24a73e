"""Repository for the contents container (partitioned by /id)."""

from __future__ import annotations

import json
import logging
from typing import Any

from content_stack.database.repositories.base import BaseRepository
from content_stack.errors import ConflictError, NotFoundError
from content_stack.models.content import Content
from content_stack.models.lock import LockState

logger = logging.getLogger(__name__)


class ContentRepository(BaseRepository[Content]):
    """Provide data access for the contents container."""

    container_name = "contents"
    model_class = Content

    async def list_by_collection(self, collection_id: str) -> list[Content]:
        """Fetch all active contents of a collection, oldest first."""
        return await self.query(
            "SELECT * FROM c WHERE c.collection_id = @collection_id"
            " AND NOT IS_DEFINED(c.deleted_at)"
            " ORDER BY c.created_at ASC",
            [{"name": "@collection_id", "value": collection_id}],
        )

    async def update_live_fields(self, content_id: str, fields: dict[str, Any]) -> None:
        """Overwrite the given live fields without touching lock or version state."""
        if not fields:
            return
        await self.patch(
            content_id,
            content_id,
            [{"op": "set", "path": f"/{name}", "value": value} for name, value in fields.items()],
        )

    async def advance_current_version(self, content_id: str, version_number: int) -> bool:
        """Move current_version forward to ``version_number``; never backwards.

        Returns False when another writer already moved it past this number.
        """
        try:
            await self.patch(
                content_id,
                content_id,
                [{"op": "set", "path": "/current_version", "value": version_number}],
                filter_predicate=f"FROM c WHERE c.current_version < {int(version_number)}",
            )
        except ConflictError:
            logger.debug(
                "current_version of %s already at or past %d", content_id, version_number
            )
            return False
        return True

    async def set_lock(self, content_id: str, lock: LockState | None) -> None:
        """Set or clear the content's own lock (last writer wins)."""
        await self.patch(
            content_id,
            content_id,
            [{"op": "set", "path": "/lock", "value": lock.model_dump(mode="json") if lock else None}],
        )

    async def set_element_lock(
        self, content: Content, element_id: str, lock: LockState | None
    ) -> None:
        """Set or clear one embedded element's lock.

        The patch is guarded on the element still sitting at the same index.
        """
        index = next((i for i, el in enumerate(content.elements) if el.id == element_id), None)
        if index is None:
            raise NotFoundError("Element", element_id)
        await self.patch(
            content.id,
            content.id,
            [
                {
                    "op": "set",
                    "path": f"/elements/{index}/lock",
                    "value": lock.model_dump(mode="json") if lock else None,
                }
            ],
            filter_predicate=f"FROM c WHERE c.elements[{index}].id = {json.dumps(element_id)}",
        )
