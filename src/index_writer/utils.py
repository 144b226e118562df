"""
Utility functions for the index writer.

Includes retry delay calculation and NDJSON record iteration.
"""

from __future__ import annotations

import gzip
import json
import random
import sys
from typing import Any, Dict, Iterator, TextIO


def calculate_retry_delay(
    attempt: int, base_delay_ms: int = 1000, max_delay_ms: int = 30000, jitter: bool = True
) -> float:
    """
    Calculate retry delay with exponential backoff and optional jitter.

    Args:
        attempt: Current retry number (0-based)
        base_delay_ms: Base delay in milliseconds
        max_delay_ms: Maximum delay in milliseconds
        jitter: Add random jitter to prevent thundering herd

    Returns:
        Delay in seconds
    """
    # Exponential backoff: base_delay * 2^attempt
    delay_ms = min(base_delay_ms * (2**attempt), max_delay_ms)

    if jitter:
        # Add ±25% jitter
        jitter_range = delay_ms * 0.25
        delay_ms += random.uniform(-jitter_range, jitter_range)

    return max(0, delay_ms / 1000.0)


def iter_ndjson(path: str) -> Iterator[Dict[str, Any]]:
    """Yield one JSON object per non-blank line of a file, a .gz file, or stdin ('-')."""
    if path == "-":
        stream: TextIO = sys.stdin
    elif path.endswith(".gz"):
        stream = gzip.open(path, "rt", encoding="utf-8")
    else:
        stream = open(path, "r", encoding="utf-8")

    try:
        for lineno, line in enumerate(stream, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{lineno}: invalid JSON: {e}") from e
            if not isinstance(obj, dict):
                raise ValueError(f"{path}:{lineno}: expected a JSON object")
            yield obj
    finally:
        if path != "-":
            stream.close()
