"""
Demo script for the Destination batching engine.

Runs against an in-process fake bulk endpoint (httpx.MockTransport) that
rejects every 7th document once, so the partial-failure retry path is
visible in the logs. Point INDEX_WRITER_HOST at a real cluster and use
Destination.from_settings() to run the same flow for real.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
from loguru import logger

from es_client import Record, Version, new_client
from index_writer import Destination

_rejected_once: set = set()


def fake_bulk(request: httpx.Request) -> httpx.Response:
    if request.method == "HEAD":
        return httpx.Response(200)

    lines = [json.loads(line) for line in request.content.decode().splitlines()]
    items, i = [], 0
    while i < len(lines):
        (action, meta), = lines[i].items()
        if action in ("create", "update"):
            i += 1
        key = meta.get("_id", "")
        if key and int(key) % 7 == 0 and key not in _rejected_once:
            _rejected_once.add(key)
            items.append(
                {
                    action: {
                        "_id": key,
                        "status": 429,
                        "error": {"type": "es_rejected_execution_exception", "reason": "busy"},
                    }
                }
            )
        else:
            items.append({action: {"_id": key or "auto", "status": 200}})
        i += 1
    return httpx.Response(200, json={"took": 1, "errors": bool(_rejected_once), "items": items})


async def main():
    client = new_client(
        Version.V8,
        {"host": "http://demo.invalid:9200", "index": "demo"},
        transport=httpx.MockTransport(fake_bulk),
    )
    acked = {"ok": 0, "failed": 0}

    def on_ack(err):
        acked["failed" if err else "ok"] += 1

    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    async with Destination(client, bulk_size=50, retries=2) as dest:
        logger.info("🚀 Writing 500 records in bulks of 50")
        for i in range(1, 501):
            action = "deleted" if i % 25 == 0 else "updated"
            await dest.accept(
                Record(
                    key=str(i).encode(),
                    payload={"n": i},
                    metadata={"action": action},
                    created_at=t0 + timedelta(milliseconds=i),
                ),
                on_ack,
            )

    logger.info(f"✅ Demo complete: acknowledged ok={acked['ok']} failed={acked['failed']}")


if __name__ == "__main__":
    asyncio.run(main())
