"""Version history: guarded updates, restores and enriched history reads."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from content_stack.errors import NotFoundError, ValidationError
from content_stack.models.content import LIVE_FIELDS, Content, ContentStatus, Element
from content_stack.models.history import (
    DiffSummary,
    ElementChange,
    HistoryEntry,
    VersionComparison,
)

if TYPE_CHECKING:
    from content_stack.database.repositories.contents import ContentRepository
    from content_stack.models.collection import Collection
    from content_stack.models.version import ContentVersion, VersionSnapshot
    from content_stack.services.locks import LockService
    from content_stack.services.versions import VersionStore

logger = logging.getLogger(__name__)

INITIAL_VERSION_NOTE = "Initial version"
_SCALAR_FIELDS = ("title", "slug", "status", "metadata")


class ActorDirectory(Protocol):
    """Resolve an actor id to a display name."""

    async def display_name(self, actor_id: str) -> str | None: ...


def _elements_by_id(snapshot: VersionSnapshot) -> dict[str, dict[str, Any]]:
    return {str(el.get("id")): el for el in snapshot.elements}


def _changed_fields(before: VersionSnapshot, after: VersionSnapshot) -> list[str]:
    changed = [name for name in _SCALAR_FIELDS if getattr(before, name) != getattr(after, name)]
    if before.elements != after.elements:
        changed.append("elements")
    return changed


def _element_changes(
    before: VersionSnapshot, after: VersionSnapshot
) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[ElementChange]]:
    old = _elements_by_id(before)
    new = _elements_by_id(after)
    added = [el for el_id, el in new.items() if el_id not in old]
    removed = [el for el_id, el in old.items() if el_id not in new]
    modified = [
        ElementChange(id=el_id, before=old[el_id], after=el)
        for el_id, el in new.items()
        if el_id in old and old[el_id] != el
    ]
    return added, removed, modified


def summarize_diff(version: ContentVersion, previous: ContentVersion | None) -> DiffSummary:
    """Summarize what ``version`` changed relative to ``previous``.

    The first version of a content counts all of its elements as added.
    """
    if previous is None:
        return DiffSummary(added=len(version.snapshot.elements))
    added, removed, modified = _element_changes(previous.snapshot, version.snapshot)
    return DiffSummary(
        changed_fields=_changed_fields(previous.snapshot, version.snapshot),
        added=len(added),
        removed=len(removed),
        modified=len(modified),
        title_changed=previous.snapshot.title != version.snapshot.title,
    )


def _build_elements(content: Content, raw: list[Any]) -> list[Element]:
    """Validate an element list for ``content``, keeping existing element locks."""
    current_locks = {el.id: el.lock for el in content.elements}
    elements: list[Element] = []
    for item in raw:
        data = item.model_dump() if isinstance(item, Element) else dict(item)
        data["content_id"] = content.id
        data.pop("lock", None)
        try:
            element = Element.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid element: {exc}", field_name="elements") from exc
        element.lock = current_locks.get(element.id)
        elements.append(element)

    ids = {el.id for el in elements}
    if len(ids) != len(elements):
        raise ValidationError("Element ids must be unique within a content", "elements")
    for element in elements:
        if element.parent_id is not None and element.parent_id not in ids:
            raise ValidationError(
                f"Element {element.id} references unknown parent {element.parent_id}",
                field_name="elements",
            )
    return elements


class VersionHistoryService:
    """Guarded content mutations that always leave a version behind."""

    def __init__(
        self,
        contents: ContentRepository,
        store: VersionStore,
        locks: LockService,
        actors: ActorDirectory,
    ) -> None:
        self._contents = contents
        self._store = store
        self._locks = locks
        self._actors = actors

    async def create_content(
        self,
        collection: Collection,
        title: str,
        *,
        slug: str = "",
        status: ContentStatus = ContentStatus.DRAFT,
        elements: list[Any] | None = None,
        metadata: dict[str, Any] | None = None,
        actor: str | None = None,
    ) -> Content:
        """Create a content together with its version 1.

        If version 1 cannot be written the content document is removed again,
        so no content ever exists without a version.
        """
        await self._locks.assert_modifiable(collection)
        content = Content(
            collection_id=collection.id,
            title=title,
            slug=slug,
            status=status,
            metadata=metadata or {},
            current_version=1,
        )
        content.elements = _build_elements(content, elements or [])

        await self._contents.create(content)
        try:
            await self._store.create_version(
                content, actor, INITIAL_VERSION_NOTE, increment=False
            )
        except Exception:
            logger.exception("Initial version failed for content %s, removing it", content.id)
            await self._contents.delete(content.id, content.id)
            raise
        logger.info("Created content %s in collection %s", content.id, collection.id)
        return content

    async def record_update(
        self,
        content: Content,
        changes: dict[str, Any],
        actor: str | None = None,
        note: str | None = None,
    ) -> ContentVersion:
        """Apply ``changes`` to the live fields and append a version.

        Raises LockedError (unchanged from the lock check) if the content or
        its collection is locked, and ValidationError for unknown fields or
        invalid values.
        """
        await self._locks.assert_modifiable(content)

        unknown = sorted(set(changes) - set(LIVE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Not a live content field: {', '.join(unknown)}", field_name=unknown[0]
            )

        values = dict(changes)
        if "elements" in values:
            values["elements"] = _build_elements(content, values["elements"])
        try:
            candidate = Content.model_validate({**content.model_dump(), **values})
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid content update: {exc}") from exc

        for name in values:
            setattr(content, name, getattr(candidate, name))
        await self._persist_live_fields(content, values)
        return await self._store.create_version(content, actor, note)

    async def update_element(
        self,
        content: Content,
        element_id: str,
        data: dict[str, Any],
        actor: str | None = None,
        note: str | None = None,
    ) -> ContentVersion:
        """Replace one element's data, honouring element, content and collection locks."""
        element = content.find_element(element_id)
        if element is None:
            raise NotFoundError("Element", element_id)
        await self._locks.assert_modifiable(element)

        element.data = copy.deepcopy(data)
        await self._persist_live_fields(content, ["elements"])
        return await self._store.create_version(
            content, actor, note or f"Updated element {element_id}"
        )

    async def restore_version(
        self,
        content: Content,
        target_number: int,
        actor: str | None = None,
    ) -> ContentVersion:
        """Overwrite the live fields from version ``target_number`` as a new version.

        The target and every version after it are left untouched; the
        restore is appended as the next number.
        """
        if target_number < 1:
            raise ValidationError(
                f"Version numbers start at 1, got {target_number}", field_name="version_number"
            )
        target = await self._store.get_version(content, target_number)
        if target is None:
            raise NotFoundError("ContentVersion", f"{content.id}@{target_number}")
        await self._locks.assert_modifiable(content)

        snapshot = target.snapshot
        try:
            status = ContentStatus(snapshot.status)
        except ValueError as exc:
            raise ValidationError(
                f"Version {target_number} has an invalid status {snapshot.status!r}",
                field_name="status",
            ) from exc
        content.elements = _build_elements(content, copy.deepcopy(snapshot.elements))
        content.title = snapshot.title
        content.slug = snapshot.slug
        content.status = status
        content.metadata = copy.deepcopy(snapshot.metadata)

        await self._persist_live_fields(content, LIVE_FIELDS)
        entry = await self._store.create_version(
            content, actor, f"Restored from version {target_number}"
        )
        logger.info(
            "Restored content %s to version %d as version %d",
            content.id,
            target_number,
            entry.version_number,
        )
        return entry

    async def enhanced_history(self, content: Content) -> list[HistoryEntry]:
        """Return every version newest first, with creator names and diff summaries."""
        versions = await self._store.list_versions(content)
        names = await self._creator_names(versions)

        entries: list[HistoryEntry] = []
        previous: ContentVersion | None = None
        for version in reversed(versions):
            entries.append(
                HistoryEntry(
                    version=version,
                    creator_name=names.get(version.created_by) if version.created_by else None,
                    diff_summary=summarize_diff(version, previous),
                )
            )
            previous = version
        entries.reverse()
        return entries

    async def get_version_with_diff(
        self, content: Content, version_number: int
    ) -> HistoryEntry | None:
        """Return one version with its diff against the nearest earlier version."""
        versions = await self._store.list_versions(content)
        version = next((v for v in versions if v.version_number == version_number), None)
        if version is None:
            return None
        previous = next((v for v in versions if v.version_number < version_number), None)
        names = await self._creator_names([version])
        return HistoryEntry(
            version=version,
            creator_name=names.get(version.created_by) if version.created_by else None,
            diff_summary=summarize_diff(version, previous),
        )

    async def compare_versions(
        self, content: Content, from_number: int, to_number: int
    ) -> VersionComparison:
        """Element-level comparison between two versions of ``content``."""
        before = await self._store.get_version(content, from_number)
        if before is None:
            raise NotFoundError("ContentVersion", f"{content.id}@{from_number}")
        after = await self._store.get_version(content, to_number)
        if after is None:
            raise NotFoundError("ContentVersion", f"{content.id}@{to_number}")

        added, removed, modified = _element_changes(before.snapshot, after.snapshot)
        return VersionComparison(
            from_version=before,
            to_version=after,
            changed_fields=_changed_fields(before.snapshot, after.snapshot),
            added=added,
            removed=removed,
            modified=modified,
        )

    async def _creator_names(self, versions: list[ContentVersion]) -> dict[str, str | None]:
        actor_ids = sorted({v.created_by for v in versions if v.created_by})
        names = await asyncio.gather(*(self._actors.display_name(a) for a in actor_ids))
        return dict(zip(actor_ids, names, strict=True))

    async def _persist_live_fields(self, content: Content, fields: Any) -> None:
        dumped = content.model_dump(mode="json", include=set(fields))
        await self._contents.update_live_fields(content.id, dumped)
