"""Bounded-concurrency runner for per-content work across a collection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from content_stack.models.release import BatchFailure, BatchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class BatchCancellation:
    """Cooperative cancellation token checked between units of work."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class PartialUnitError(Exception):
    """A unit failed after it had already affected ``affected`` entries.

    Units whose effects cannot be rolled back raise this so the batch result
    still counts the work that was done.
    """

    def __init__(self, affected: int, cause: Exception) -> None:
        super().__init__(str(cause))
        self.affected = affected
        self.cause = cause


class BatchRunner:
    """Run one async unit per item with at most ``max_concurrency`` in flight.

    A unit is never interrupted once started. Cancellation only prevents
    units that have not started yet; those are reported as skipped. Unit
    failures are logged and recorded, never raised.
    """

    def __init__(self, max_concurrency: int = 8) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._max_concurrency = max_concurrency

    async def map(self, items: Sequence[T], fn: Callable[[T], Awaitable[R]]) -> list[R]:
        """Apply ``fn`` to every item under the concurrency bound, keeping order.

        Unlike ``run`` the first exception propagates; meant for reads.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(item: T) -> R:
            async with semaphore:
                return await fn(item)

        return list(await asyncio.gather(*(_bounded(item) for item in items)))

    async def run(
        self,
        items: Sequence[T],
        unit: Callable[[T], Awaitable[int]],
        *,
        key: Callable[[T], str],
        cancellation: BatchCancellation | None = None,
        label: str = "batch",
    ) -> BatchResult:
        """Apply ``unit`` to every item; each unit returns how many entries it affected."""
        result = BatchResult(total=len(items))
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _run_one(item: T) -> None:
            item_id = key(item)
            async with semaphore:
                if cancellation is not None and cancellation.cancelled:
                    result.skipped.append(item_id)
                    return
                try:
                    affected = await unit(item)
                except PartialUnitError as exc:
                    logger.exception(
                        "%s failed for %s after %d entries", label, item_id, exc.affected
                    )
                    result.affected += exc.affected
                    result.failures.append(
                        BatchFailure(
                            item_id=item_id,
                            error_type=type(exc.cause).__name__,
                            message=str(exc.cause),
                            affected=exc.affected,
                        )
                    )
                    return
                except Exception as exc:
                    logger.exception("%s failed for %s", label, item_id)
                    result.failures.append(
                        BatchFailure(
                            item_id=item_id,
                            error_type=type(exc).__name__,
                            message=str(exc),
                        )
                    )
                    return
            result.succeeded.append(item_id)
            result.affected += affected

        await asyncio.gather(*(_run_one(item) for item in items))

        result.cancelled = bool(cancellation and cancellation.cancelled)
        logger.info(
            "%s finished: %d/%d succeeded, %d failed, %d skipped",
            label,
            len(result.succeeded),
            result.total,
            len(result.failures),
            len(result.skipped),
        )
        return result
