"""
Backend client capability consumed by the index writer core.

The core never talks HTTP itself: it asks a `BackendClient` to check
connectivity, to encode single operations into bulk lines and to submit a
finished bulk payload. One implementation exists per backend protocol
version (see `es_client.factory`).
"""

from __future__ import annotations

from typing import Any, Protocol, Tuple, runtime_checkable

from .models import Record

JSONObject = Any


@runtime_checkable
class BackendClient(Protocol):
    """Protocol for bulk-capable document backends."""

    async def ping(self) -> None:
        """Raise ConnectionCheckError when the backend is unreachable."""
        ...

    async def bulk(self, payload: bytes) -> bytes:
        """Submit an NDJSON bulk payload and return the raw response body.

        Raises BulkRequestError on transport-level failure.
        """
        ...

    def encode_create(self, record: Record) -> Tuple[JSONObject, JSONObject]:
        """Action metadata and document for an insert with a backend-assigned id."""
        ...

    def encode_upsert(self, key: str, record: Record) -> Tuple[JSONObject, JSONObject]:
        """Action metadata and document for a create-or-update by key."""
        ...

    def encode_delete(self, key: str) -> JSONObject:
        """Action metadata for a delete by key (no document line)."""
        ...

    async def aclose(self) -> None: ...
