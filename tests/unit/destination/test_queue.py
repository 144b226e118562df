"""
Unit tests for OperationQueue.
"""

from es_client.models import Record
from index_writer.destination import Operation, OperationQueue


def test_empty_queue():
    q = OperationQueue()
    assert q.is_empty()
    assert q.size() == 0
    assert len(q) == 0


def test_enqueue_appends_in_arrival_order(make_record):
    q = OperationQueue()
    ops = [Operation(record=make_record(k, at=i)) for i, k in enumerate("abc")]
    for op in ops:
        q.enqueue(op)

    assert not q.is_empty()
    assert q.size() == 3
    assert list(q) == ops
    assert q[0] is ops[0]


def test_sort_by_created_at_ascending(make_record):
    """Out-of-order arrivals (T3, T1, T2) are restored to T1, T2, T3."""
    q = OperationQueue()
    for key, at in (("t3", 30), ("t1", 10), ("t2", 20)):
        q.enqueue(Operation(record=make_record(key, at=at)))

    q.sort_by_created_at()

    assert [op.key for op in q] == ["t1", "t2", "t3"]


def test_sort_is_stable_for_equal_timestamps(make_record):
    q = OperationQueue()
    for key in ("first", "second", "third"):
        q.enqueue(Operation(record=make_record(key, at=5)))
    q.enqueue(Operation(record=make_record("earliest", at=1)))

    q.sort_by_created_at()

    assert [op.key for op in q] == ["earliest", "first", "second", "third"]


def test_created_at_comes_from_record(make_record):
    record = make_record("k", at=42)
    op = Operation(record=record)
    assert op.created_at == record.created_at


def test_naive_timestamps_are_treated_as_utc():
    from datetime import datetime, timezone

    r = Record(key=b"k", payload={}, created_at=datetime(2024, 1, 1, 12, 0))
    assert r.created_at.tzinfo == timezone.utc


def test_capacity_is_a_hint_only(make_record):
    q = OperationQueue(capacity=1)
    q.enqueue(Operation(record=make_record("a")))
    q.enqueue(Operation(record=make_record("b")))
    assert q.capacity == 1
    assert q.size() == 2
