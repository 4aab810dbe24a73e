"""Lock resolution across the collection → content → element hierarchy."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from content_stack.errors import LockedError, NotFoundError
from content_stack.models.collection import Collection
from content_stack.models.content import Content, Element
from content_stack.models.lock import LockInfo, LockSource, LockState

if TYPE_CHECKING:
    from content_stack.database.repositories.collections import CollectionRepository
    from content_stack.database.repositories.contents import ContentRepository

logger = logging.getLogger(__name__)

Lockable = Collection | Content | Element

_LOCKED_MESSAGES = {
    (Content, LockSource.SELF): "Content is locked and cannot be modified.",
    (Content, LockSource.COLLECTION): (
        "Content cannot be modified because its collection is locked."
    ),
    (Element, LockSource.SELF): "Element is locked and cannot be modified.",
    (Element, LockSource.CONTENT): "Element cannot be modified because its content is locked.",
    (Element, LockSource.COLLECTION): (
        "Element cannot be modified because its collection is locked."
    ),
}


class ParentResolver(Protocol):
    """Return the containing entity of a lockable entity, or None at the root."""

    async def parent_of(self, entity: Lockable) -> Lockable | None: ...


class RepositoryParentResolver:
    """Resolve parents by reading the current documents from the store."""

    def __init__(self, collections: CollectionRepository, contents: ContentRepository) -> None:
        self._collections = collections
        self._contents = contents

    async def parent_of(self, entity: Lockable) -> Lockable | None:
        if isinstance(entity, Element):
            content = await self._contents.get(entity.content_id, entity.content_id)
            if content is None:
                raise NotFoundError("Content", entity.content_id)
            return content
        if isinstance(entity, Content):
            collection = await self._collections.get(entity.collection_id, entity.collection_id)
            if collection is None:
                raise NotFoundError("Collection", entity.collection_id)
            return collection
        return None


def _source_of(entity: Lockable) -> LockSource:
    if isinstance(entity, Collection):
        return LockSource.COLLECTION
    if isinstance(entity, Content):
        return LockSource.CONTENT
    return LockSource.SELF


async def effective_lock(entity: Lockable, resolver: ParentResolver) -> LockInfo | None:
    """Resolve the lock that applies to ``entity``.

    Ancestors dominate: a locked collection is reported as the source for
    every content and element below it, whatever their own flags say. The
    entity's own lock is reported (source ``self``) only when no ancestor
    is locked.
    """
    parent = await resolver.parent_of(entity)
    if parent is not None:
        inherited = await effective_lock(parent, resolver)
        if inherited is not None:
            if inherited.source is LockSource.SELF:
                return inherited.model_copy(update={"source": _source_of(parent)})
            return inherited
    if entity.lock is not None:
        return LockInfo.from_state(entity.lock, LockSource.SELF)
    return None


class LockService:
    """Lock, unlock and guard modifications of lockable entities."""

    def __init__(
        self,
        resolver: ParentResolver,
        collections: CollectionRepository,
        contents: ContentRepository,
    ) -> None:
        self._resolver = resolver
        self._collections = collections
        self._contents = contents

    async def effective_lock(self, entity: Lockable) -> LockInfo | None:
        return await effective_lock(entity, self._resolver)

    async def can_modify(self, entity: Lockable) -> bool:
        return await self.effective_lock(entity) is None

    async def assert_modifiable(self, entity: Lockable) -> None:
        """Raise LockedError if the entity or any ancestor is locked."""
        info = await self.effective_lock(entity)
        if info is None:
            return
        message = _LOCKED_MESSAGES.get(
            (type(entity), info.source),
            f"{type(entity).__name__} is locked and cannot be modified.",
        )
        raise LockedError(message, info)

    async def lock(self, entity: Lockable, actor: str | None, reason: str | None = None) -> None:
        """Set the entity's own lock; a later lock or unlock simply overwrites it."""
        state = LockState(locked_by=actor, reason=reason)
        await self._write(entity, state)
        entity.lock = state
        logger.info("Locked %s %s by %s", type(entity).__name__, entity.id, actor)

    async def unlock(self, entity: Lockable) -> None:
        """Clear the entity's own lock; ancestor locks are unaffected."""
        await self._write(entity, None)
        entity.lock = None
        logger.info("Unlocked %s %s", type(entity).__name__, entity.id)

    async def _write(self, entity: Lockable, state: LockState | None) -> None:
        if isinstance(entity, Collection):
            await self._collections.set_lock(entity.id, state)
        elif isinstance(entity, Content):
            await self._contents.set_lock(entity.id, state)
        else:
            content = await self._contents.get(entity.content_id, entity.content_id)
            if content is None:
                raise NotFoundError("Content", entity.content_id)
            await self._contents.set_element_lock(content, entity.id, state)
