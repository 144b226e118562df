"""
Flush/retry controller.

Drives one flush of an operation queue: sort once, then build, submit and
correlate until every operation is acknowledged or the retry budget is
spent. Only the failed subset of a pass is resubmitted, in the order it
already had.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from time import monotonic
from typing import Iterable, List, Optional, Set

from loguru import logger

from es_client.errors import BulkResponseError
from es_client.models import BulkResponse, BulkResponseItem, parse_bulk_response
from es_client.protocol import BackendClient
from ..metrics import metrics_registry as m
from ..utils import calculate_retry_delay
from .operation import Operation
from .payload import BulkPayload, BulkPayloadBuilder, resolve_action
from .queue import OperationQueue
from .types import Action, FlushAbortedError, OperationError, UnsupportedActionError


@dataclass
class FlushResult:
    """Counters for one flush call."""

    attempts: int = 0
    succeeded: int = 0
    failed: int = 0
    rejected: int = 0
    dropped: int = 0

    @property
    def acknowledged(self) -> int:
        return self.succeeded + self.failed + self.rejected


class FlushController:
    """Runs the build → submit → correlate → retry loop for one queue.

    Args:
        client: Backend client used for encoding and submission
        retries: Additional attempts after the first (0 disables retry)
        retry_backoff_ms: Base delay between passes; 0 retries immediately
        drop_unsupported_actions: Drop operations with an unknown action hint
            without acknowledging them, instead of rejecting them
    """

    def __init__(
        self,
        client: BackendClient,
        *,
        retries: int = 0,
        retry_backoff_ms: int = 0,
        drop_unsupported_actions: bool = False,
    ):
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self._client = client
        self._builder = BulkPayloadBuilder(client)
        self._retries = retries
        self._retry_backoff_ms = retry_backoff_ms
        self._drop_unsupported = drop_unsupported_actions

    @property
    def retries(self) -> int:
        return self._retries

    async def run(self, queue: OperationQueue) -> FlushResult:
        """Flush `queue`; every operation in it is settled when this returns.

        Raises the underlying IndexWriterError when the flush aborts
        (submission, response or encoding failure). Before raising, all
        operations not yet acknowledged are resolved with FlushAbortedError.
        """
        result = FlushResult()
        if queue.is_empty():
            return result

        queue.sort_by_created_at()
        batch: List[Operation] = list(queue)
        attempts_left = self._retries
        dropped: Set[int] = set()

        try:
            while True:
                payload = self._builder.build(batch)
                await self._settle_skipped(payload.skipped, result, dropped)
                if payload.empty:
                    logger.info("no operations to execute in bulk, skipping")
                    break

                result.attempts += 1
                response = await self._submit(payload)
                failed = await self._correlate(payload, response, result)

                if not failed:
                    break
                if attempts_left == 0:
                    for op in failed:
                        await op.resolve(op.last_error)
                        m.operations_total.labels(self._action_of(op), "failure").inc()
                    result.failed += len(failed)
                    logger.warning(
                        f"{len(failed)} operation(s) failed after {result.attempts} attempt(s)"
                    )
                    break

                attempts_left -= 1
                logger.info(
                    f"Retrying {len(failed)} failed operation(s) "
                    f"({self._retries - attempts_left}/{self._retries})"
                )
                await self._backoff(result.attempts)
                batch = failed
        except (Exception, asyncio.CancelledError) as exc:
            await self._abort(queue, exc, dropped)
            raise

        logger.debug(
            f"Flush complete: ok={result.succeeded} failed={result.failed} "
            f"rejected={result.rejected} dropped={result.dropped} attempts={result.attempts}"
        )
        return result

    # --------------------------- internals

    async def _settle_skipped(
        self, skipped: Iterable[Operation], result: FlushResult, dropped: Set[int]
    ) -> None:
        for op in skipped:
            if self._drop_unsupported:
                dropped.add(id(op))
                result.dropped += 1
                m.operations_total.labels("unknown", "dropped").inc()
                continue
            await op.resolve(UnsupportedActionError(op.key, op.record.action_hint))
            result.rejected += 1
            m.operations_total.labels("unknown", "rejected").inc()

    async def _submit(self, payload: BulkPayload) -> BulkResponse:
        m.flush_passes_total.inc()
        logger.debug(f"Submitting bulk of {len(payload)} operation(s), {len(payload.body)} bytes")
        started = monotonic()
        try:
            body = await self._client.bulk(payload.body)
        except Exception:
            m.bulk_requests_total.labels("failure").inc()
            raise
        finally:
            m.bulk_request_latency_ms.observe((monotonic() - started) * 1000.0)
        m.bulk_requests_total.labels("success").inc()
        return parse_bulk_response(body)

    async def _correlate(
        self, payload: BulkPayload, response: BulkResponse, result: FlushResult
    ) -> List[Operation]:
        """Acknowledge successes; return failures (with last_error set) in batch order."""
        if len(response.items) != len(payload):
            raise BulkResponseError(
                "bulk response failure: expected "
                f"{len(payload)} item(s) in response, got {len(response.items)}"
            )

        failed: List[Operation] = []
        for (op, action), item in zip(payload.operations, response.items):
            detail = item.detail()
            if detail is not None and detail.ok:
                await op.resolve(None)
                result.succeeded += 1
                m.operations_total.labels(action.value, "success").inc()
                continue
            op.last_error = self._item_error(op, action, detail)
            failed.append(op)
        return failed

    @staticmethod
    def _item_error(
        op: Operation, action: Action, detail: Optional[BulkResponseItem]
    ) -> OperationError:
        if detail is None:
            logger.warning(f"no action details found in bulk response for key={op.key}")
            return OperationError(op.key, action, status=0)
        if detail.error is None:
            return OperationError(op.key, action, detail.status)
        return OperationError(
            op.key,
            action,
            detail.status,
            error_type=detail.error.type,
            reason=detail.error.reason,
            caused_by=detail.error.caused_by,
        )

    async def _backoff(self, attempt: int) -> None:
        if self._retry_backoff_ms <= 0:
            return
        delay = calculate_retry_delay(
            attempt - 1, base_delay_ms=self._retry_backoff_ms, max_delay_ms=30000
        )
        await asyncio.sleep(delay)

    async def _abort(self, queue: OperationQueue, exc: BaseException, dropped: Set[int]) -> None:
        pending = [op for op in queue if not op.resolved and id(op) not in dropped]
        logger.error(
            f"Flush aborted: {type(exc).__name__}: {exc} "
            f"({len(pending)} pending operation(s) failed)"
        )
        for op in pending:
            op.last_error = exc
            await op.resolve(FlushAbortedError(op.key, exc))
            m.operations_total.labels(self._action_of(op), "aborted").inc()

    @staticmethod
    def _action_of(op: Operation) -> str:
        action = resolve_action(op.record)
        return action.value if action else "unknown"
