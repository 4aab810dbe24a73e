"""Shared fixtures: in-memory repositories and wired services."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from content_stack.errors import ConflictError, NotFoundError
from content_stack.models.collection import BranchInfo, Collection
from content_stack.models.content import Content
from content_stack.models.lock import LockState
from content_stack.models.version import ContentVersion, version_id
from content_stack.services.batch import BatchRunner
from content_stack.services.history import VersionHistoryService
from content_stack.services.locks import LockService, RepositoryParentResolver
from content_stack.services.releases import ReleaseManager
from content_stack.services.versions import VersionStore


def _roundtrip(data: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(data))


class FakeCollectionRepository:
    """In-memory stand-in for CollectionRepository."""

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}

    async def create(self, item: Collection) -> Collection:
        if item.id in self.docs:
            raise ConflictError(f"collections document already exists: {item.id}")
        self.docs[item.id] = _roundtrip(item.model_dump(mode="json", exclude_none=True))
        return item

    async def get(self, item_id: str, partition_key: str) -> Collection | None:  # noqa: ARG002
        data = self.docs.get(item_id)
        return Collection.model_validate(data) if data else None

    async def set_lock(self, collection_id: str, lock: LockState | None) -> None:
        self.docs[collection_id]["lock"] = lock.model_dump(mode="json") if lock else None

    async def add_branch(self, collection_id: str, branch: BranchInfo) -> None:
        doc = self.docs[collection_id]
        if any(b["name"] == branch.name for b in doc.get("branches", [])):
            raise ConflictError(f"Precondition failed patching collections document {collection_id}")
        doc.setdefault("branches", []).append(branch.model_dump(mode="json"))
        doc["current_branch"] = branch.name


class FakeContentRepository:
    """In-memory stand-in for ContentRepository."""

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}

    async def create(self, item: Content) -> Content:
        self.docs[item.id] = _roundtrip(item.model_dump(mode="json", exclude_none=True))
        return item

    async def get(self, item_id: str, partition_key: str) -> Content | None:  # noqa: ARG002
        data = self.docs.get(item_id)
        return Content.model_validate(data) if data else None

    async def delete(self, item_id: str, partition_key: str) -> None:  # noqa: ARG002
        self.docs.pop(item_id, None)

    async def list_by_collection(self, collection_id: str) -> list[Content]:
        return [
            Content.model_validate(doc)
            for doc in self.docs.values()
            if doc["collection_id"] == collection_id
        ]

    async def update_live_fields(self, content_id: str, fields: dict[str, Any]) -> None:
        self.docs[content_id].update(_roundtrip(fields))

    async def advance_current_version(self, content_id: str, version_number: int) -> bool:
        doc = self.docs[content_id]
        if doc["current_version"] >= version_number:
            return False
        doc["current_version"] = version_number
        return True

    async def set_lock(self, content_id: str, lock: LockState | None) -> None:
        self.docs[content_id]["lock"] = lock.model_dump(mode="json") if lock else None

    async def set_element_lock(
        self, content: Content, element_id: str, lock: LockState | None
    ) -> None:
        for element in self.docs[content.id]["elements"]:
            if element["id"] == element_id:
                element["lock"] = lock.model_dump(mode="json") if lock else None
                return
        raise NotFoundError("Element", element_id)


class FakeVersionRepository:
    """In-memory stand-in for VersionRepository.

    ``get_max_number`` yields between reading and returning so concurrent writers
    interleave; ``inject_conflicts`` makes the next N inserts fail as if
    another process had taken the number first.
    """

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.inject_conflicts = 0
        self.insert_attempts = 0

    def _all(self, content_id: str) -> list[ContentVersion]:
        entries = [
            ContentVersion.model_validate(doc)
            for doc in self.docs.values()
            if doc["content_id"] == content_id
        ]
        return sorted(entries, key=lambda v: v.version_number, reverse=True)

    def numbers(self, content_id: str) -> list[int]:
        return sorted(v.version_number for v in self._all(content_id))

    async def insert(self, entry: ContentVersion) -> ContentVersion:
        self.insert_attempts += 1
        entry.id = version_id(entry.content_id, entry.version_number)
        if self.inject_conflicts > 0:
            self.inject_conflicts -= 1
            raise ConflictError(f"content_versions document already exists: {entry.id}")
        if entry.id in self.docs:
            raise ConflictError(f"content_versions document already exists: {entry.id}")
        self.docs[entry.id] = _roundtrip(entry.model_dump(mode="json", exclude_none=True))
        return entry

    async def get_by_number(self, content_id: str, version_number: int) -> ContentVersion | None:
        data = self.docs.get(version_id(content_id, version_number))
        return ContentVersion.model_validate(data) if data else None

    async def get_max_number(self, content_id: str) -> int:
        entries = self._all(content_id)
        await asyncio.sleep(0)
        return entries[0].version_number if entries else 0

    async def get_latest(self, content_id: str) -> ContentVersion | None:
        entries = self._all(content_id)
        return entries[0] if entries else None

    async def list_by_content(self, content_id: str) -> list[ContentVersion]:
        return self._all(content_id)

    async def list_by_branch(self, content_id: str, branch: str) -> list[ContentVersion]:
        return [v for v in self._all(content_id) if v.branch == branch]

    async def mark_branch_end(self, entry: ContentVersion, branch: str) -> ContentVersion:
        self.docs[entry.id]["branch"] = branch
        self.docs[entry.id]["is_branch_end"] = True
        return entry.model_copy(update={"branch": branch, "is_branch_end": True})

    async def list_purgeable(self, content_id: str, below: int) -> list[ContentVersion]:
        return [
            v
            for v in self._all(content_id)
            if v.version_number < below and not v.is_branch_end
        ]

    async def count_purgeable(self, content_id: str, below: int) -> int:
        return len(await self.list_purgeable(content_id, below))

    async def remove(self, entry: ContentVersion) -> None:
        del self.docs[entry.id]


class FakeActorDirectory:
    def __init__(self, names: dict[str, str] | None = None) -> None:
        self.names = names or {}
        self.lookups: list[str] = []

    async def display_name(self, actor_id: str) -> str | None:
        self.lookups.append(actor_id)
        return self.names.get(actor_id)


@pytest.fixture
def collections_repo() -> FakeCollectionRepository:
    return FakeCollectionRepository()


@pytest.fixture
def contents_repo() -> FakeContentRepository:
    return FakeContentRepository()


@pytest.fixture
def versions_repo() -> FakeVersionRepository:
    return FakeVersionRepository()


@pytest.fixture
def actors() -> FakeActorDirectory:
    return FakeActorDirectory({"user-1": "Ada Editor", "user-2": "Grace Reviewer"})


@pytest.fixture
def lock_service(collections_repo, contents_repo) -> LockService:
    resolver = RepositoryParentResolver(collections_repo, contents_repo)
    return LockService(resolver, collections_repo, contents_repo)


@pytest.fixture
def version_store(versions_repo, contents_repo) -> VersionStore:
    return VersionStore(versions_repo, contents_repo, retry_budget=25, retry_backoff_seconds=0)


@pytest.fixture
def history(contents_repo, version_store, lock_service, actors) -> VersionHistoryService:
    return VersionHistoryService(contents_repo, version_store, lock_service, actors)


@pytest.fixture
def releases(collections_repo, contents_repo, versions_repo, version_store) -> ReleaseManager:
    return ReleaseManager(
        collections_repo,
        contents_repo,
        versions_repo,
        version_store,
        runner=BatchRunner(max_concurrency=4),
    )


@pytest.fixture
async def collection(collections_repo) -> Collection:
    col = Collection(name="Articles", slug="articles")
    await collections_repo.create(col)
    return col
