"""
Elasticsearch Client Library

Backend client capability for the index writer: per-version HTTP dialects
behind one protocol, plus the record and bulk-response models.

Usage:
    from es_client import new_client, Version, Record

    es = new_client(Version.V8, {"host": "http://127.0.0.1:9200", "index": "users"})
    await es.ping()
"""

from .client import ElasticsearchClient, V5Client, V6Client, V7Client, V8Client
from .errors import (
    IndexWriterError,
    ConnectionCheckError,
    BulkRequestError,
    BulkResponseError,
    PayloadEncodingError,
    UnsupportedVersionError,
)
from .factory import Version, new_client
from .models import Record, BulkResponse, BulkResponseItem, BulkItemError, parse_bulk_response
from .protocol import BackendClient

__version__ = "1.0.0"
__all__ = [
    "BackendClient",
    "ElasticsearchClient",
    "V5Client",
    "V6Client",
    "V7Client",
    "V8Client",
    "Version",
    "new_client",
    "Record",
    "BulkResponse",
    "BulkResponseItem",
    "BulkItemError",
    "parse_bulk_response",
    "IndexWriterError",
    "ConnectionCheckError",
    "BulkRequestError",
    "BulkResponseError",
    "PayloadEncodingError",
    "UnsupportedVersionError",
]
