"""Wiring of repositories and services for a configured Cosmos database."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from content_stack.database.client import CosmosClient
from content_stack.database.repositories import (
    CollectionRepository,
    ContentRepository,
    VersionRepository,
)
from content_stack.services.batch import BatchRunner
from content_stack.services.history import ActorDirectory, VersionHistoryService
from content_stack.services.locks import LockService, RepositoryParentResolver
from content_stack.services.releases import ReleaseManager
from content_stack.services.versions import VersionStore

if TYPE_CHECKING:
    from azure.cosmos.aio import DatabaseProxy

    from content_stack.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ContentServices:
    """The services exposed to the request layer."""

    collections: CollectionRepository
    contents: ContentRepository
    locks: LockService
    versions: VersionStore
    history: VersionHistoryService
    releases: ReleaseManager


async def init_database(settings: Settings) -> CosmosClient:
    """Connect to Cosmos DB. Raises ConnectionError if the endpoint is missing.

    In development the database and containers are created when absent.
    """
    if not settings.cosmos.endpoint:
        raise ConnectionError("COSMOS_ENDPOINT is not set, add it to .env")
    cosmos = CosmosClient(settings.cosmos)
    await cosmos.initialize()
    if settings.app.is_development:
        await cosmos.ensure_containers()
    logger.info("Connected to Cosmos DB database %s", settings.cosmos.database)
    return cosmos


def init_services(
    database: DatabaseProxy, settings: Settings, actors: ActorDirectory
) -> ContentServices:
    """Build every service over one database."""
    collections = CollectionRepository(database)
    contents = ContentRepository(database)
    versions = VersionRepository(database)

    locks = LockService(RepositoryParentResolver(collections, contents), collections, contents)
    store = VersionStore.from_config(versions, contents, settings.versioning)
    history = VersionHistoryService(contents, store, locks, actors)
    releases = ReleaseManager(
        collections,
        contents,
        versions,
        store,
        runner=BatchRunner(settings.versioning.batch_concurrency),
        default_branch=settings.versioning.default_branch,
    )
    return ContentServices(
        collections=collections,
        contents=contents,
        locks=locks,
        versions=store,
        history=history,
        releases=releases,
    )
