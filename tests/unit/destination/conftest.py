"""
Fixtures for destination unit tests.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

from es_client.errors import BulkRequestError
from es_client.models import Record

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

ACTION_NAMES = ("index", "create", "update", "delete")


class FakeBackendClient:
    """In-memory BackendClient that answers bulk requests from the payload itself.

    `fail` maps a key (the `_id` of an update/delete, or the document's
    "key" field for inserts) to how many attempts should fail; -1 fails
    forever. Every submission is recorded in `requests` as a list of
    (action, key) tuples, in line order.
    """

    def __init__(
        self,
        *,
        fail: Optional[Dict[str, int]] = None,
        bulk_error: Optional[Exception] = None,
        ping_error: Optional[Exception] = None,
        with_error_detail: bool = True,
        respond: Optional[Callable[[List[tuple]], dict]] = None,
    ):
        self.index = "test-index"
        self.fail = dict(fail or {})
        self.bulk_error = bulk_error
        self.ping_error = ping_error
        self.with_error_detail = with_error_detail
        self.respond = respond

        self.payloads: List[bytes] = []
        self.requests: List[List[tuple]] = []
        self.calls = {"create": 0, "upsert": 0, "delete": 0}
        self.pinged = False
        self.closed = False

    # ---- BackendClient protocol

    async def ping(self) -> None:
        if self.ping_error:
            raise self.ping_error
        self.pinged = True

    async def bulk(self, payload: bytes) -> bytes:
        self.payloads.append(payload)
        if self.bulk_error:
            raise self.bulk_error

        entries = self._parse(payload)
        self.requests.append([(action, key) for action, key, _ in entries])
        if self.respond:
            return json.dumps(self.respond(entries)).encode()

        items = [{action: self._item(action, key)} for action, key, _ in entries]
        errors = any(v["status"] >= 300 for item in items for v in item.values())
        return json.dumps({"took": 1, "errors": errors, "items": items}).encode()

    def encode_create(self, record: Record):
        self.calls["create"] += 1
        return {"create": {"_index": self.index}}, record.payload

    def encode_upsert(self, key: str, record: Record):
        self.calls["upsert"] += 1
        metadata = {"update": {"_id": key, "_index": self.index, "retry_on_conflict": 3}}
        return metadata, {"doc": record.payload, "doc_as_upsert": True}

    def encode_delete(self, key: str):
        self.calls["delete"] += 1
        return {"delete": {"_id": key, "_index": self.index}}

    async def aclose(self) -> None:
        self.closed = True

    # ---- helpers

    @staticmethod
    def _parse(payload: bytes) -> List[tuple]:
        lines = [json.loads(line) for line in payload.decode("utf-8").splitlines()]
        entries = []
        i = 0
        while i < len(lines):
            (action, meta), = lines[i].items()
            doc = None
            if action in ("create", "index", "update"):
                i += 1
                doc = lines[i]
            key = meta.get("_id") or (doc or {}).get("key")
            entries.append((action, key, doc))
            i += 1
        return entries

    def _item(self, action: str, key: Optional[str]) -> dict:
        remaining = self.fail.get(key, 0)
        if remaining == 0:
            return {"_id": key, "status": 201 if action == "create" else 200}
        if remaining > 0:
            self.fail[key] = remaining - 1
        item = {"_id": key, "status": 500}
        if self.with_error_detail:
            item["error"] = {
                "type": "mapper_parsing_exception",
                "reason": f"failed to parse {key}",
                "caused_by": {"type": "illegal_argument_exception", "reason": "bad"},
            }
        return item


@pytest.fixture
def fake_client():
    """Backend that accepts everything."""
    return FakeBackendClient()


@pytest.fixture
def make_client():
    """Factory for backends with scripted failures."""
    return FakeBackendClient


@pytest.fixture
def make_record():
    """Build a Record; `at` is seconds after a fixed epoch."""

    def _make(
        key: Optional[str] = None,
        action: str = "",
        payload=None,
        at: float = 0,
    ) -> Record:
        metadata = {"action": action} if action else {}
        body = payload if payload is not None else {"key": key, "v": at}
        return Record(
            key=key.encode() if key else None,
            payload=body,
            metadata=metadata,
            created_at=T0 + timedelta(seconds=at),
        )

    return _make


@pytest.fixture
def transport_failure():
    return BulkRequestError("bulk request failure: connection refused")
