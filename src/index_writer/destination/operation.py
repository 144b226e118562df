from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from loguru import logger

from es_client.models import Record
from ..metrics import metrics_registry
from .types import AckCallback, OperationAlreadyResolved


@dataclass(eq=False)
class Operation:
    """One pending record plus its single-shot completion.

    `created_at` comes from the record itself, not from arrival time, so the
    queue can restore source order before submission.

    The completion is resolved exactly once, either with None (success) or
    with the final error; `resolve` refuses a second call. The optional
    callback is notified at the same moment. Callback failures, raised or
    returned, are logged and counted, never propagated, so one misbehaving caller cannot keep the
    rest of a batch from being acknowledged.
    """

    record: Record
    callback: Optional[AckCallback] = None
    created_at: datetime = field(init=False)
    last_error: Optional[BaseException] = field(default=None, init=False)

    _resolved: bool = field(default=False, init=False, repr=False)
    _outcome: Optional[BaseException] = field(default=None, init=False, repr=False)
    _future: Optional[asyncio.Future] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.created_at = self.record.created_at

    @property
    def key(self) -> str:
        return self.record.key_str

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def completion(self) -> asyncio.Future:
        """Future resolving to None on success or to the final error (never raised)."""
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
            if self._resolved:
                self._future.set_result(self._outcome)
        return self._future

    async def resolve(self, error: Optional[BaseException] = None) -> None:
        if self._resolved:
            raise OperationAlreadyResolved(
                f"operation with key={self.key} was already acknowledged"
            )
        self._resolved = True
        self._outcome = error
        if self._future is not None and not self._future.done():
            self._future.set_result(error)

        if self.callback is None:
            return
        try:
            result = self.callback(error)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            metrics_registry.callback_errors_total.inc()
            logger.warning(
                f"Completion callback for key={self.key} raised (ignored): "
                f"{type(exc).__name__}: {exc}"
            )
            return
        if isinstance(result, BaseException):
            metrics_registry.callback_errors_total.inc()
            logger.warning(
                f"Completion callback for key={self.key} returned an error (ignored): "
                f"{type(result).__name__}: {result}"
            )
