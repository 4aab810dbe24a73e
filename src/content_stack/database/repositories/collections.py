"""Repository for the collections container (partitioned by /id)."""

from __future__ import annotations

import json

from content_stack.database.repositories.base import BaseRepository
from content_stack.models.collection import BranchInfo, Collection
from content_stack.models.lock import LockState


class CollectionRepository(BaseRepository[Collection]):
    """Provide data access for the collections container."""

    container_name = "collections"
    model_class = Collection

    async def set_lock(self, collection_id: str, lock: LockState | None) -> None:
        """Set or clear the collection's own lock (last writer wins)."""
        await self.patch(
            collection_id,
            collection_id,
            [{"op": "set", "path": "/lock", "value": lock.model_dump(mode="json") if lock else None}],
        )

    async def add_branch(self, collection_id: str, branch: BranchInfo) -> None:
        """Append a branch unless one with the same name is already registered.

        The name check and the append are a single conditional patch, so two
        concurrent writers cannot both register the same name.
        """
        predicate = (
            "FROM c WHERE NOT ARRAY_CONTAINS(c.branches, "
            f"{{\"name\": {json.dumps(branch.name)}}}, true)"
        )
        await self.patch(
            collection_id,
            collection_id,
            [
                {"op": "add", "path": "/branches/-", "value": branch.model_dump(mode="json")},
                {"op": "set", "path": "/current_branch", "value": branch.name},
            ],
            filter_predicate=predicate,
        )
