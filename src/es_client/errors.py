"""
Custom exceptions for the index writer.

Provides structured error handling for connectivity, bulk submission and
payload construction failures.
"""

from __future__ import annotations


class IndexWriterError(Exception):
    """Base error for the index writer and its backend clients."""

    pass


class ConnectionCheckError(IndexWriterError):
    """Connectivity check against the backend failed (fatal at startup)."""

    pass


class BulkRequestError(IndexWriterError):
    """Transport-level failure of a bulk submission (aborts the flush)."""

    pass


class BulkResponseError(IndexWriterError):
    """Bulk response could not be read or does not line up with the request."""

    pass


class PayloadEncodingError(IndexWriterError):
    """A record could not be encoded into a bulk action/document line."""

    pass


class UnsupportedVersionError(IndexWriterError):
    """No client dialect exists for the requested backend version."""

    pass


def map_http_error(e: Exception) -> IndexWriterError:
    import httpx

    if isinstance(e, IndexWriterError):
        return e
    if isinstance(e, httpx.TimeoutException):
        return BulkRequestError(f"bulk request failure: timed out: {e}")
    if isinstance(e, httpx.ConnectError):
        return BulkRequestError(f"bulk request failure: connection failed: {e}")
    if isinstance(e, httpx.HTTPError):
        return BulkRequestError(f"bulk request failure: {type(e).__name__}: {e}")
    return BulkRequestError(f"bulk request failure: {e}")
