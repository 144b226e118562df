from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Tuple

import httpx
from loguru import logger
from pydantic import ValidationError

from .errors import BulkRequestError, ConnectionCheckError, PayloadEncodingError, map_http_error
from .models import ErrorResponse, Record

# Conflicts on concurrent updates of the same document are retried server-side.
RETRY_ON_CONFLICT = 3


@dataclass
class _Cfg:
    index: str
    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    cloud_id: Optional[str] = None
    api_key: Optional[str] = None
    service_token: Optional[str] = None
    type: Optional[str] = None
    timeout: float = 30.0


def resolve_cloud_id(cloud_id: str) -> str:
    """Turn an Elastic Cloud ID into the cluster's HTTPS base URL.

    Format: ``<name>:<base64("<host>$<es_uuid>$<kibana_uuid>")>``
    """
    _, _, encoded = cloud_id.rpartition(":")
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"invalid cloud id: {e}") from e

    parts = decoded.split("$")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise ValueError("invalid cloud id: expected <host>$<es_uuid>[$<kibana_uuid>]")

    host, _, port = parts[0].partition(":")
    url = f"https://{parts[1]}.{host}"
    return f"{url}:{port}" if port else url


class ElasticsearchClient:
    """Async HTTP client for the Elasticsearch bulk API.

    Usage:
        es = V8Client({"host": "http://127.0.0.1:9200", "index": "users"})
        await es.ping()
        body = await es.bulk(payload)
        await es.aclose()

    Subclasses pin the protocol version; versions that still have mapping
    types set `include_type` so every action line carries `_type`.
    """

    version: ClassVar[str] = ""
    include_type: ClassVar[bool] = False

    def __init__(self, config: dict, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        c = _Cfg(**config)
        if not c.index:
            raise ValueError("index name is required")
        if self.include_type and not c.type:
            raise ValueError(f"index type is required for version {self.version}")
        if not c.host and not c.cloud_id:
            raise ValueError("either host or cloud id is required")

        self._cfg = c
        self._http = httpx.AsyncClient(
            base_url=c.host or resolve_cloud_id(c.cloud_id),
            auth=self._basic_auth(),
            headers=self._auth_headers(),
            timeout=c.timeout,
            transport=transport,
        )

    @property
    def index(self) -> str:
        return self._cfg.index

    # ---------- lifecycle ----------

    async def ping(self) -> None:
        try:
            resp = await self._http.head("/")
        except httpx.HTTPError as e:
            raise ConnectionCheckError(f"connection could not be established: {e}") from e
        if not resp.is_success:
            raise ConnectionCheckError(
                "connection could not be established: "
                f"host ping failed: {resp.status_code} {resp.reason_phrase}"
            )
        logger.debug(f"Ping OK: {self._http.base_url} (version {self.version})")

    async def bulk(self, payload: bytes) -> bytes:
        try:
            resp = await self._http.post(
                "/_bulk",
                content=payload,
                headers={"Content-Type": "application/x-ndjson"},
            )
        except httpx.HTTPError as e:
            raise map_http_error(e) from e

        if not resp.is_success:
            raise BulkRequestError(f"bulk request failure: {self._describe_error(resp)}")
        return resp.content

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---------- encoding ----------

    def encode_create(self, record: Record) -> Tuple[dict, Any]:
        return {"create": self._target()}, self._document(record)

    def encode_upsert(self, key: str, record: Record) -> Tuple[dict, Any]:
        metadata = {
            "update": {
                "_id": key,
                **self._target(),
                "retry_on_conflict": RETRY_ON_CONFLICT,
            }
        }
        return metadata, {"doc": self._document(record), "doc_as_upsert": True}

    def encode_delete(self, key: str) -> dict:
        return {"delete": {"_id": key, **self._target()}}

    # ---------- internal helpers ----------

    def _target(self) -> Dict[str, str]:
        target = {"_index": self._cfg.index}
        if self.include_type:
            target["_type"] = self._cfg.type
        return target

    @staticmethod
    def _document(record: Record) -> Any:
        payload = record.payload
        if isinstance(payload, dict):
            return payload
        if isinstance(payload, bytes):
            # Raw payloads are trusted to be JSON already
            try:
                return json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise PayloadEncodingError(
                    f"failed to prepare data with key={record.key_str}: raw payload is not JSON: {e}"
                ) from e
        raise PayloadEncodingError(
            f"failed to prepare data with key={record.key_str}: payload is empty"
        )

    def _basic_auth(self) -> Optional[httpx.BasicAuth]:
        c = self._cfg
        if c.api_key or c.service_token or not c.username:
            return None
        return httpx.BasicAuth(c.username, c.password or "")

    def _auth_headers(self) -> Dict[str, str]:
        c = self._cfg
        if c.api_key:
            return {"Authorization": f"ApiKey {c.api_key}"}
        if c.service_token:
            return {"Authorization": f"Bearer {c.service_token}"}
        return {}

    @staticmethod
    def _describe_error(resp: httpx.Response) -> str:
        try:
            return ErrorResponse.model_validate_json(resp.content).describe()
        except ValidationError:
            return f"{resp.status_code} {resp.reason_phrase}"


class V5Client(ElasticsearchClient):
    version = "5"
    include_type = True


class V6Client(ElasticsearchClient):
    version = "6"
    include_type = True


class V7Client(ElasticsearchClient):
    version = "7"


class V8Client(ElasticsearchClient):
    version = "8"
