"""Error types raised by the versioning, locking and release services.

- ContentStackError: Base exception
- NotFoundError: Missing collection, content, element, version or branch
- ConflictError: Duplicate branch name or unresolved numbering contention
- LockedError: Modification blocked by an effective lock
- ValidationError: Malformed restore target, change set or snapshot

Every error carries a machine code and an ``http_status`` hint for the
request layer that renders it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from content_stack.models.lock import LockInfo


class ContentStackError(Exception):
    """Base exception for all content-stack errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "CONTENT_STACK_ERROR"
        self.details = details or {}


class NotFoundError(ContentStackError):
    """A referenced document does not exist.

    Raised when:
    - A collection, content or element id is unknown
    - A version number has no entry (e.g. restore target purged)
    - A branch name is not registered on a collection
    """

    http_status = 404

    def __init__(self, kind: str, identifier: str | int) -> None:
        super().__init__(
            f"{kind} not found: {identifier}",
            code="NOT_FOUND",
            details={"kind": kind, "id": identifier},
        )
        self.kind = kind
        self.identifier = identifier


class ConflictError(ContentStackError):
    """The write collides with existing state.

    Raised when:
    - A branch name already exists on the collection
    - A version number could not be claimed within the retry budget
    - An initial version already exists for a content
    """

    http_status = 409

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="CONFLICT", details=details)


class LockedError(ContentStackError):
    """Modification blocked by the entity's own lock or an ancestor's."""

    http_status = 423

    def __init__(self, message: str, lock_info: LockInfo) -> None:
        super().__init__(
            message,
            code="LOCKED",
            details={"lock_info": lock_info.model_dump(mode="json")},
        )
        self.lock_info = lock_info

    @property
    def source(self) -> str:
        return self.lock_info.source


class ValidationError(ContentStackError):
    """Input or stored data failed validation."""

    http_status = 422

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name},
        )
        self.field_name = field_name
