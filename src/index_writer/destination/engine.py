from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

from loguru import logger

from es_client.factory import new_client
from es_client.models import Record
from es_client.protocol import BackendClient
from .flush import FlushController, FlushResult
from .operation import Operation
from .queue import OperationQueue
from .types import AckCallback, DestinationNotOpenError

if TYPE_CHECKING:
    from indexer.config import Settings

MAX_BULK_SIZE = 10_000
MAX_RETRIES = 255


class Destination:
    """Write-side batching engine in front of a bulk document backend.

    Records are buffered in an OperationQueue; once `bulk_size` of them are
    pending, the `accept` call that crossed the threshold flushes the queue
    before returning. One asyncio.Lock covers enqueue and the whole flush,
    network round-trips and retries included, so at most one flush is ever
    in flight and concurrent producers wait their turn.

    Every accepted record is acknowledged exactly once through the future
    returned by `accept` (and the optional callback). Operations still
    queued at `shutdown()` are abandoned unless `drain=True`.

    Usage:
        async with Destination(client, bulk_size=500, retries=3) as dest:
            done = await dest.accept(record)
            ...
        error = await done  # None on success
    """

    def __init__(
        self,
        client: BackendClient,
        *,
        bulk_size: int = 1000,
        retries: int = 0,
        retry_backoff_ms: int = 0,
        drop_unsupported_actions: bool = False,
    ):
        if not 1 <= bulk_size <= MAX_BULK_SIZE:
            raise ValueError(f"bulk_size must be between 1 and {MAX_BULK_SIZE}")
        if not 0 <= retries <= MAX_RETRIES:
            raise ValueError(f"retries must be between 0 and {MAX_RETRIES}")

        self._client = client
        self._bulk_size = bulk_size
        self._controller = FlushController(
            client,
            retries=retries,
            retry_backoff_ms=retry_backoff_ms,
            drop_unsupported_actions=drop_unsupported_actions,
        )
        self._queue: Optional[OperationQueue] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: "Settings", **client_kwargs) -> "Destination":
        """Build the destination and its version-specific client from settings."""
        client = new_client(settings.version, settings.client_config(), **client_kwargs)
        return cls(
            client,
            bulk_size=settings.bulk_size,
            retries=settings.retries,
            retry_backoff_ms=settings.retry_backoff_ms,
            drop_unsupported_actions=settings.drop_unsupported_actions,
        )

    @property
    def client(self) -> BackendClient:
        return self._client

    @property
    def bulk_size(self) -> int:
        return self._bulk_size

    @property
    def is_open(self) -> bool:
        return self._queue is not None

    @property
    def pending(self) -> int:
        """Number of queued, not yet flushed operations."""
        return len(self._queue) if self._queue is not None else 0

    # --------------- context management

    async def __aenter__(self) -> "Destination":
        try:
            await self.startup()
        except BaseException:
            await self._client.aclose()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.shutdown(drain=exc_type is None)

    # --------------- lifecycle

    async def startup(self) -> None:
        """Check connectivity; the destination is unusable if this raises."""
        await self._client.ping()
        self._queue = OperationQueue(capacity=self._bulk_size)
        logger.info(
            f"Destination ready (bulk_size={self._bulk_size}, "
            f"retries={self._controller.retries})"
        )

    async def shutdown(self, drain: bool = False) -> None:
        """Release the client. Queued operations are abandoned unless `drain`."""
        async with self._lock:
            try:
                if self._queue is not None:
                    if drain:
                        await self._flush_locked()
                    elif not self._queue.is_empty():
                        logger.warning(
                            f"Shutting down with {len(self._queue)} unflushed operation(s); "
                            "they will not be acknowledged"
                        )
            finally:
                self._queue = None
                await self._client.aclose()
        logger.info("Destination closed")

    # --------------- public API

    async def accept(
        self, record: Record, callback: Optional[AckCallback] = None
    ) -> "asyncio.Future":
        """Queue a record; flush synchronously when the queue reaches bulk_size.

        Returns the operation's completion future, resolving to None on
        success or to the final error. Raises only when the flush triggered
        by this call aborts (the operations it carried are failed first).
        """
        async with self._lock:
            queue = self._require_open()
            op = Operation(record=record, callback=callback)
            done = op.completion
            queue.enqueue(op)

            if len(queue) >= self._bulk_size:
                await self._flush_locked()
            return done

    async def flush(self) -> FlushResult:
        """Flush whatever is queued now, regardless of bulk_size."""
        async with self._lock:
            self._require_open()
            return await self._flush_locked()

    # --------------- internals

    def _require_open(self) -> OperationQueue:
        if self._queue is None:
            raise DestinationNotOpenError("destination is not open; call startup() first")
        return self._queue

    async def _flush_locked(self) -> FlushResult:
        queue = self._queue
        if queue is None or queue.is_empty():
            return FlushResult()
        try:
            result = await self._controller.run(queue)
        finally:
            # Every operation of the flush is settled (or dropped) by now
            self._queue = OperationQueue(capacity=self._bulk_size)
        logger.info(
            f"Flushed {len(queue)} operation(s): ok={result.succeeded} "
            f"failed={result.failed} rejected={result.rejected} attempts={result.attempts}"
        )
        return result
