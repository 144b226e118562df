"""Destination engine

Accept → queue → flush → acknowledge pipeline for bulk document backends:
- OperationQueue (arrival order, stable sort by record timestamp)
- BulkPayloadBuilder (NDJSON action/document lines via a BackendClient)
- FlushController (partial-failure retry of the failed subset only)
- Destination (threshold flush under one lock, exactly-once acknowledgement)
"""

from .types import (
    AckCallback,
    Action,
    OperationError,
    UnsupportedActionError,
    FlushAbortedError,
    OperationAlreadyResolved,
    DestinationNotOpenError,
)
from .operation import Operation
from .queue import OperationQueue
from .payload import BulkPayload, BulkPayloadBuilder, resolve_action
from .flush import FlushController, FlushResult
from .engine import Destination

__all__ = [
    # types
    "AckCallback",
    "Action",
    "Operation",
    "BulkPayload",
    "FlushResult",
    # errors
    "OperationError",
    "UnsupportedActionError",
    "FlushAbortedError",
    "OperationAlreadyResolved",
    "DestinationNotOpenError",
    # runtime
    "OperationQueue",
    "BulkPayloadBuilder",
    "resolve_action",
    "FlushController",
    "Destination",
]
