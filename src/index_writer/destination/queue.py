from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

from .operation import Operation


class OperationQueue:
    """Ordered buffer of pending operations (insertion order = arrival order).

    Not safe for concurrent use; the owning Destination serialises access
    with its lock. There is no removal API: callers replace the whole queue
    with a fresh instance on reset or when recollecting retries.
    """

    def __init__(self, operations: Optional[Sequence[Operation]] = None, capacity: int = 0):
        self._ops: List[Operation] = list(operations) if operations else []
        self._capacity = capacity  # sizing hint only, never enforced

    @property
    def capacity(self) -> int:
        return self._capacity

    def is_empty(self) -> bool:
        return not self._ops

    def size(self) -> int:
        return len(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._ops)

    def __getitem__(self, i: int) -> Operation:
        return self._ops[i]

    def enqueue(self, op: Operation) -> None:
        self._ops.append(op)

    def sort_by_created_at(self) -> None:
        """Stable ascending sort on the records' own timestamps."""
        self._ops.sort(key=lambda op: op.created_at)
