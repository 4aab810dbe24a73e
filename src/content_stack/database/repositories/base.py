"""Generic repository over one Cosmos DB container."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar, Generic, TypeVar, cast

from azure.cosmos.aio import DatabaseProxy
from azure.cosmos.exceptions import CosmosHttpResponseError

from content_stack.errors import ConflictError
from content_stack.models.base import DocumentBase

_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409
_HTTP_PRECONDITION_FAILED = 412

T = TypeVar("T", bound=DocumentBase)


class BaseRepository(Generic[T]):
    """CRUD, patch and query helpers shared by every container repository.

    Reads of missing or soft-deleted documents return ``None``; duplicate
    inserts and failed patch preconditions surface as ``ConflictError``.
    """

    container_name: ClassVar[str]
    model_class: type[T]

    def __init__(self, database: DatabaseProxy) -> None:
        self._container = database.get_container_client(self.container_name)

    @staticmethod
    def _dump(item: DocumentBase) -> dict[str, Any]:
        return item.model_dump(mode="json", exclude_none=True)

    async def create(self, item: T) -> T:
        """Insert a new document; fails if the id already exists in its partition."""
        try:
            await self._container.create_item(body=self._dump(item))
        except CosmosHttpResponseError as exc:
            if exc.status_code == _HTTP_CONFLICT:
                raise ConflictError(
                    f"{self.container_name} document already exists: {item.id}",
                    details={"id": item.id},
                ) from exc
            raise
        return item

    async def get(self, item_id: str, partition_key: str) -> T | None:
        """Fetch an active document by id, or None."""
        try:
            data = cast(
                "dict[str, Any]",
                await self._container.read_item(item=item_id, partition_key=partition_key),
            )
        except CosmosHttpResponseError as exc:
            if exc.status_code == _HTTP_NOT_FOUND:
                return None
            raise
        if data.get("deleted_at") is not None:
            return None
        return self.model_class.model_validate(data)

    async def patch(
        self,
        item_id: str,
        partition_key: str,
        operations: list[dict[str, Any]],
        *,
        filter_predicate: str | None = None,
    ) -> dict[str, Any]:
        """Apply partial-document operations, optionally guarded by a predicate."""
        kwargs: dict[str, Any] = {}
        if filter_predicate:
            kwargs["filter_predicate"] = filter_predicate
        operations = [
            *operations,
            {"op": "set", "path": "/updated_at", "value": datetime.now(UTC).isoformat()},
        ]
        try:
            return cast(
                "dict[str, Any]",
                await self._container.patch_item(
                    item=item_id,
                    partition_key=partition_key,
                    patch_operations=operations,
                    **kwargs,
                ),
            )
        except CosmosHttpResponseError as exc:
            if exc.status_code == _HTTP_PRECONDITION_FAILED:
                raise ConflictError(
                    f"Precondition failed patching {self.container_name} document {item_id}",
                    details={"id": item_id, "predicate": filter_predicate},
                ) from exc
            raise

    async def delete(self, item_id: str, partition_key: str) -> None:
        """Remove a document permanently."""
        await self._container.delete_item(item=item_id, partition_key=partition_key)

    async def query(
        self,
        query: str,
        parameters: list[dict[str, Any]] | None = None,
        *,
        partition_key: str | None = None,
    ) -> list[T]:
        """Run a parameterised SQL query and validate each row."""
        kwargs: dict[str, Any] = {"parameters": parameters or []}
        if partition_key is not None:
            kwargs["partition_key"] = partition_key
        items = self._container.query_items(query, **kwargs)
        return [self.model_class.model_validate(item) async for item in items]

    async def scalar(
        self,
        query: str,
        parameters: list[dict[str, Any]] | None = None,
        *,
        partition_key: str | None = None,
    ) -> Any:
        """Run a ``SELECT VALUE`` query and return its last value (or None)."""
        kwargs: dict[str, Any] = {"parameters": parameters or []}
        if partition_key is not None:
            kwargs["partition_key"] = partition_key
        value = None
        async for item in self._container.query_items(query, **kwargs):
            value = item
        return value
