"""
Index Writer

Batches change records (insert/upsert/delete) into bulk requests against a
document-indexing backend and acknowledges every record exactly once.

Usage:
    from es_client import Record, Version, new_client
    from index_writer import Destination

    client = new_client(Version.V8, {"host": "http://127.0.0.1:9200", "index": "users"})
    async with Destination(client, bulk_size=500, retries=3) as dest:
        done = await dest.accept(Record(key=b"1", payload={"name": "a"}))
"""

from .destination import (
    Action,
    Destination,
    DestinationNotOpenError,
    FlushAbortedError,
    FlushController,
    FlushResult,
    Operation,
    OperationError,
    OperationQueue,
    UnsupportedActionError,
)

__version__ = "1.0.0"
__all__ = [
    "Action",
    "Destination",
    "DestinationNotOpenError",
    "FlushAbortedError",
    "FlushController",
    "FlushResult",
    "Operation",
    "OperationError",
    "OperationQueue",
    "UnsupportedActionError",
]
