"""
Unit tests for destination metrics (light sanity checks).
"""

import pytest
from prometheus_client import REGISTRY

from index_writer.destination import FlushController, Operation, OperationQueue


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@pytest.mark.asyncio
async def test_outcomes_and_requests_are_counted(make_client, make_record):
    client = make_client(fail={"bad": -1})
    before_ok = _sample("index_writer_operations_total", {"action": "create", "outcome": "success"})
    before_fail = _sample(
        "index_writer_operations_total", {"action": "create", "outcome": "failure"}
    )
    before_rejected = _sample(
        "index_writer_operations_total", {"action": "unknown", "outcome": "rejected"}
    )
    before_requests = _sample("index_writer_bulk_requests_total", {"outcome": "success"})
    before_passes = _sample("index_writer_flush_passes_total")

    queue = OperationQueue(
        [
            Operation(record=make_record("good")),
            Operation(record=make_record("bad")),
            Operation(record=make_record("odd", action="bogus")),
        ]
    )
    await FlushController(client, retries=1).run(queue)

    assert (
        _sample("index_writer_operations_total", {"action": "create", "outcome": "success"})
        == before_ok + 1
    )
    assert (
        _sample("index_writer_operations_total", {"action": "create", "outcome": "failure"})
        == before_fail + 1
    )
    assert (
        _sample("index_writer_operations_total", {"action": "unknown", "outcome": "rejected"})
        == before_rejected + 1
    )
    assert _sample("index_writer_bulk_requests_total", {"outcome": "success"}) == before_requests + 2
    assert _sample("index_writer_flush_passes_total") == before_passes + 2


@pytest.mark.asyncio
async def test_failed_submission_is_counted(make_client, make_record, transport_failure):
    client = make_client(bulk_error=transport_failure)
    before = _sample("index_writer_bulk_requests_total", {"outcome": "failure"})
    before_latency = _sample("index_writer_bulk_request_latency_ms_count")

    queue = OperationQueue([Operation(record=make_record("a"))])
    with pytest.raises(type(transport_failure)):
        await FlushController(client).run(queue)

    assert _sample("index_writer_bulk_requests_total", {"outcome": "failure"}) == before + 1
    assert _sample("index_writer_bulk_request_latency_ms_count") == before_latency + 1
