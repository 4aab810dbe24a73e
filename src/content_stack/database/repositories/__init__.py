"""Repository modules for each Cosmos DB container."""

from content_stack.database.repositories.collections import CollectionRepository
from content_stack.database.repositories.contents import ContentRepository
from content_stack.database.repositories.versions import VersionRepository

__all__ = [
    "CollectionRepository",
    "ContentRepository",
    "VersionRepository",
]
