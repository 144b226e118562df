"""
Bulk payload construction.

Turns a batch of operations into the newline-delimited request body: one
action/metadata line per operation, followed by a document line for inserts
and upserts. Lines are written strictly in batch order; response
correlation relies on that order.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from loguru import logger

from es_client.errors import PayloadEncodingError
from es_client.models import Record
from es_client.protocol import BackendClient
from .operation import Operation
from .types import Action

INSERT_HINTS = frozenset({"insert"})
UPSERT_HINTS = frozenset({"create", "created", "update", "updated"})
DELETE_HINTS = frozenset({"delete", "deleted"})


def resolve_action(record: Record) -> Optional[Action]:
    """Map a record to its bulk action; None means the hint is not supported.

    - no key: insert (the backend assigns the id). A delete hint is the one
      exception: it is reported as unsupported instead of being turned into
      an insert of a document that was meant to be removed
    - key and empty hint: create
    - key and create/update hint: upsert (create-or-update by key)
    - key and insert hint: insert
    - key and delete hint: delete
    """
    hint = record.action_hint
    if not record.key:
        # Keyless deletes are rejected rather than written as inserts
        return None if hint in DELETE_HINTS else Action.INSERT
    if not hint:
        return Action.CREATE
    if hint in UPSERT_HINTS:
        return Action.UPSERT
    if hint in INSERT_HINTS:
        return Action.INSERT
    if hint in DELETE_HINTS:
        return Action.DELETE
    return None


@dataclass
class BulkPayload:
    body: bytes = b""
    # (operation, action) in line order; response item n belongs to entry n
    operations: List[Tuple[Operation, Action]] = field(default_factory=list)
    skipped: List[Operation] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.operations

    def __len__(self) -> int:
        return len(self.operations)


class BulkPayloadBuilder:
    """Builds bulk payloads through a BackendClient's per-action encoders.

    Construction is all-or-nothing: one operation that cannot be encoded
    fails the whole payload with PayloadEncodingError.
    """

    def __init__(self, client: BackendClient):
        self._client = client

    def build(self, batch: Iterable[Operation]) -> BulkPayload:
        buf = bytearray()
        payload = BulkPayload()

        for op in batch:
            action = resolve_action(op.record)
            if action is None:
                logger.warning(f"unsupported action: {op.record.action_hint!r} (key={op.key})")
                payload.skipped.append(op)
                continue

            metadata, document = self._encode(op, action)
            buf += self._line(metadata, op, "metadata")
            if action is not Action.DELETE:
                buf += self._line(document, op, "data")
            payload.operations.append((op, action))

        payload.body = bytes(buf)
        return payload

    # --------------------------- internals

    def _encode(self, op: Operation, action: Action) -> Tuple[Any, Any]:
        try:
            if action in (Action.INSERT, Action.CREATE):
                return self._client.encode_create(op.record)
            if action is Action.UPSERT:
                return self._client.encode_upsert(op.key, op.record)
            return self._client.encode_delete(op.key), None
        except PayloadEncodingError:
            raise
        except (TypeError, ValueError) as e:
            raise PayloadEncodingError(f"failed to prepare data with key={op.key}: {e}") from e

    @staticmethod
    def _line(obj: Any, op: Operation, what: str) -> bytes:
        try:
            encoded = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise PayloadEncodingError(f"failed to prepare {what} with key={op.key}: {e}") from e
        return encoded.encode("utf-8") + b"\n"
