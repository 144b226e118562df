from __future__ import annotations

import json
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from es_client.errors import IndexWriterError

# Completion callback: receives None on success or the final error and may
# return an error of its own, which is logged like a raised one.
AckCallback = Callable[
    [Optional[BaseException]],
    Union[Awaitable[Optional[BaseException]], Optional[BaseException]],
]


class Action(str, Enum):
    """Bulk action an operation resolves to."""

    INSERT = "insert"  # backend assigns the identifier
    CREATE = "create"  # keyed record without an action hint
    UPSERT = "upsert"  # create-or-update by key
    DELETE = "delete"  # delete by key, no document line


class OperationError(IndexWriterError):
    """Final per-item failure reported by the backend for one operation."""

    def __init__(
        self,
        key: str,
        action: Action,
        status: int,
        error_type: Optional[str] = None,
        reason: Optional[str] = None,
        caused_by: Any = None,
    ):
        self.key = key
        self.action = action
        self.status = status
        self.error_type = error_type
        self.reason = reason
        self.caused_by = caused_by
        super().__init__(self._message())

    def _message(self) -> str:
        prefix = f"item with key={self.key} {self.action.value} failure"
        if not self.error_type and not self.reason:
            return f"{prefix}: unknown error"
        msg = f"{prefix}: [{self.error_type}] {self.reason}"
        if self.caused_by is not None:
            msg += f": {json.dumps(self.caused_by, separators=(',', ':'), default=str)}"
        return msg


class UnsupportedActionError(IndexWriterError):
    """The record's action hint maps to no bulk action."""

    def __init__(self, key: str, action_hint: str):
        self.key = key
        self.action_hint = action_hint
        super().__init__(f"item with key={key} rejected: unsupported action: {action_hint!r}")


class FlushAbortedError(IndexWriterError):
    """The flush carrying this operation aborted before it was acknowledged."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"item with key={key} not written: flush aborted: {cause}")


class OperationAlreadyResolved(IndexWriterError):
    """An operation was acknowledged twice."""

    pass


class DestinationNotOpenError(IndexWriterError):
    """The destination was used before startup() or after shutdown()."""

    pass
