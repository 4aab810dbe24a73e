"""Async Cosmos DB client and container provisioning."""

from __future__ import annotations

import logging
from typing import Self

from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient as AzureCosmosClient
from azure.cosmos.aio import DatabaseProxy

from content_stack.config import CosmosConfig

logger = logging.getLogger(__name__)

# Container name -> partition key path
CONTAINERS: dict[str, str] = {
    "collections": "/id",
    "contents": "/id",
    "content_versions": "/content_id",
}


class CosmosClient:
    """Owns the async Cosmos DB client and the content-stack database reference."""

    def __init__(self, config: CosmosConfig) -> None:
        self._config = config
        self._client: AzureCosmosClient | None = None
        self._database: DatabaseProxy | None = None

    async def __aenter__(self) -> Self:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def initialize(self) -> None:
        """Create the client and obtain a database reference."""
        self._client = AzureCosmosClient(self._config.endpoint, credential=self._config.key)
        self._database = self._client.get_database_client(self._config.database)

    async def ensure_containers(self) -> None:
        """Create the database and its containers if they do not exist yet.

        Meant for local emulators; production containers are provisioned ahead of time.
        """
        if self._client is None:
            raise RuntimeError("CosmosClient not initialized, call initialize() first")
        self._database = await self._client.create_database_if_not_exists(self._config.database)
        for name, partition_path in CONTAINERS.items():
            await self._database.create_container_if_not_exists(
                id=name, partition_key=PartitionKey(path=partition_path)
            )
            logger.debug("Container %s ready (partition key %s)", name, partition_path)

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
            self._database = None

    @property
    def database(self) -> DatabaseProxy:
        if self._database is None:
            raise RuntimeError("CosmosClient not initialized, call initialize() first")
        return self._database
