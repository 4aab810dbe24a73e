"""Release (branch) management across a collection, plus history purge."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from content_stack.errors import ConflictError, NotFoundError, ValidationError
from content_stack.models.collection import BranchInfo, Collection
from content_stack.models.release import PurgeSummary, ReleaseContent, ReleaseSummary
from content_stack.services.batch import BatchCancellation, BatchRunner, PartialUnitError

if TYPE_CHECKING:
    from content_stack.database.repositories.collections import CollectionRepository
    from content_stack.database.repositories.contents import ContentRepository
    from content_stack.database.repositories.versions import VersionRepository
    from content_stack.models.content import Content
    from content_stack.models.version import ContentVersion
    from content_stack.services.versions import VersionStore

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "Basis"


class ReleaseManager:
    """Create named branches over a collection and prune unprotected history.

    Work that touches every content of a collection runs through a
    ``BatchRunner``: one content failing does not stop the others, and the
    returned summary says which contents succeeded.
    """

    def __init__(
        self,
        collections: CollectionRepository,
        contents: ContentRepository,
        versions: VersionRepository,
        store: VersionStore,
        *,
        runner: BatchRunner | None = None,
        default_branch: str = DEFAULT_BRANCH,
    ) -> None:
        self._collections = collections
        self._contents = contents
        self._versions = versions
        self._store = store
        self._runner = runner or BatchRunner()
        self._default_branch = default_branch

    async def _fresh(self, collection: Collection) -> Collection:
        current = await self._collections.get(collection.id, collection.id)
        if current is None:
            raise NotFoundError("Collection", collection.id)
        return current

    async def initialize_branches(
        self, collection: Collection, actor: str | None = None
    ) -> Collection:
        """Register the default branch on a collection that has none yet."""
        if collection.branches:
            return collection
        branch = BranchInfo(name=self._default_branch, created_by=actor)
        try:
            await self._collections.add_branch(collection.id, branch)
        except ConflictError:
            return await self._fresh(collection)
        collection.branches.append(branch)
        collection.current_branch = branch.name
        return collection

    def release_exists(self, collection: Collection, name: str) -> bool:
        return name in collection.branch_names

    async def create_release(
        self,
        collection: Collection,
        name: str,
        actor: str | None = None,
        *,
        copy_contents: bool = False,
        cancellation: BatchCancellation | None = None,
    ) -> ReleaseSummary:
        """Freeze the current state of every content under branch ``name``.

        With ``copy_contents=False`` each content's latest version becomes the
        branch end, unless another release already holds that version, in
        which case a copy is appended instead. With ``copy_contents=True``
        each content gets a new version, tagged as the branch end, so later
        edits never touch it.

        The name is registered on the collection before any version is
        touched; a duplicate name raises ConflictError and changes nothing.
        """
        name = name.strip()
        if not name:
            raise ValidationError("Release name must not be empty", field_name="name")

        current = await self._fresh(collection)
        if name in current.branch_names:
            raise ConflictError(
                f"Release {name!r} already exists in collection {collection.id}",
                details={"collection_id": collection.id, "name": name},
            )
        branch = BranchInfo(name=name, created_by=actor)
        try:
            await self._collections.add_branch(collection.id, branch)
        except ConflictError as exc:
            raise ConflictError(
                f"Release {name!r} already exists in collection {collection.id}",
                details={"collection_id": collection.id, "name": name},
            ) from exc
        collection.branches = [*current.branches, branch]
        collection.current_branch = name

        contents = await self._contents.list_by_collection(collection.id)

        async def _copy(content: Content) -> int:
            await self._store.create_version(
                content,
                actor,
                f"Copied to release: {name}",
                branch=name,
                is_branch_end=True,
            )
            return 1

        async def _tag_latest(content: Content) -> int:
            latest = await self._versions.get_latest(content.id)
            if latest is None:
                raise NotFoundError("ContentVersion", f"{content.id}@latest")
            if latest.branch is not None and latest.branch != name:
                # Already pinned by another release; retagging would unpin it
                return await _copy(content)
            await self._versions.mark_branch_end(latest, name)
            return 1

        result = await self._runner.run(
            contents,
            _copy if copy_contents else _tag_latest,
            key=lambda content: content.id,
            cancellation=cancellation,
            label=f"release {name!r}",
        )
        logger.info(
            "Created release %r in collection %s (%d/%d contents frozen)",
            name,
            collection.id,
            len(result.succeeded),
            result.total,
        )
        return ReleaseSummary(
            collection_id=collection.id,
            branch=branch,
            copy_contents=copy_contents,
            result=result,
        )

    async def get_contents_for_release(
        self, collection: Collection, name: str | None = None
    ) -> list[ReleaseContent]:
        """Return every content paired with its frozen version in branch ``name``.

        Without ``name`` the collection's most recently created branch is used.
        Contents that did not exist yet when the branch was created are left out.
        """
        current = await self._fresh(collection)
        name = name or current.current_branch
        branch = current.find_branch(name) if name else None
        if branch is None:
            raise NotFoundError("Release", name or "<current>")

        contents = await self._contents.list_by_collection(collection.id)
        versions = await self._runner.map(
            contents, lambda content: self._resolve_branch_version(content, branch)
        )
        return [
            ReleaseContent(content=content, version=version)
            for content, version in zip(contents, versions, strict=True)
            if version is not None
        ]

    async def get_content_for_release(
        self, content: Content, name: str
    ) -> ContentVersion | None:
        """Return a single content's frozen version in branch ``name``."""
        collection = await self._collections.get(content.collection_id, content.collection_id)
        if collection is None:
            raise NotFoundError("Collection", content.collection_id)
        branch = collection.find_branch(name)
        if branch is None:
            raise NotFoundError("Release", name)
        return await self._resolve_branch_version(content, branch)

    async def _resolve_branch_version(
        self, content: Content, branch: BranchInfo
    ) -> ContentVersion | None:
        # Branch end first, then anything tagged, then whatever was newest at branch time
        tagged = await self._versions.list_by_branch(content.id, branch.name)
        if tagged:
            return next((v for v in tagged if v.is_branch_end), tagged[0])

        history = await self._versions.list_by_content(content.id)
        return next((v for v in history if v.created_at <= branch.created_at), None)

    async def purge_versions(
        self,
        collection: Collection,
        *,
        cancellation: BatchCancellation | None = None,
    ) -> PurgeSummary:
        """Delete every version that is neither a branch end nor the latest.

        Irreversible. Call ``purge_preview_count`` first to show what will go.
        """
        contents = await self._contents.list_by_collection(collection.id)

        async def _purge(content: Content) -> int:
            latest = await self._versions.get_latest(content.id)
            if latest is None:
                return 0
            doomed = await self._versions.list_purgeable(content.id, latest.version_number)
            deleted = 0
            try:
                for entry in doomed:
                    await self._versions.remove(entry)
                    deleted += 1
            except Exception as exc:
                if deleted:
                    raise PartialUnitError(deleted, exc) from exc
                raise
            return deleted

        result = await self._runner.run(
            contents,
            _purge,
            key=lambda content: content.id,
            cancellation=cancellation,
            label=f"purge {collection.id}",
        )
        logger.info("Purged %d versions from collection %s", result.affected, collection.id)
        return PurgeSummary(collection_id=collection.id, result=result)

    async def purge_preview_count(self, collection: Collection) -> int:
        """Count the versions ``purge_versions`` would delete, without deleting."""
        contents = await self._contents.list_by_collection(collection.id)

        async def _count(content: Content) -> int:
            latest = await self._versions.get_latest(content.id)
            if latest is None:
                return 0
            return await self._versions.count_purgeable(content.id, latest.version_number)

        return sum(await self._runner.map(contents, _count))
