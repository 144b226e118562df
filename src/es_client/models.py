"""
Pydantic data models for the index writer.

`Record` is the unit accepted from the upstream pipeline; the remaining
models mirror the backend bulk API response.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import BulkResponseError


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class Record(BaseModel):
    """One change record coming from the upstream pipeline.

    `key` identifies the target document; when absent the backend assigns
    an identifier. `payload` is either structured data (a dict) or raw JSON
    bytes. The action hint is read from `metadata["action"]`.
    """

    key: Optional[bytes] = None
    payload: Union[Dict[str, Any], bytes, None] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("key")
    @classmethod
    def _empty_key_is_absent(cls, v):
        return v or None

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def action_hint(self) -> str:
        return self.metadata.get("action", "")

    @property
    def key_str(self) -> str:
        return self.key.decode("utf-8", errors="replace") if self.key else ""


class BulkItemError(BaseModel):
    """Structured error detail attached to a failed bulk item."""

    type: str = ""
    reason: str = ""
    caused_by: Any = None


class BulkResponseItem(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    index: Optional[str] = Field(default=None, alias="_index")
    status: int
    result: Optional[str] = None
    error: Optional[BulkItemError] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class BulkResponseItems(BaseModel):
    """One entry of the response `items` array, keyed by the action name."""

    index: Optional[BulkResponseItem] = None
    create: Optional[BulkResponseItem] = None
    update: Optional[BulkResponseItem] = None
    delete: Optional[BulkResponseItem] = None

    def detail(self) -> Optional[BulkResponseItem]:
        return self.index or self.create or self.update or self.delete


class BulkResponse(BaseModel):
    took: int = 0
    errors: bool = False
    items: List[BulkResponseItems] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    type: str = ""
    reason: str = ""


class ErrorResponse(BaseModel):
    """Whole-request error body returned with a non-2xx bulk status."""

    error: Union[ErrorDetail, str]
    status: Optional[int] = None

    def describe(self) -> str:
        if isinstance(self.error, str):
            return self.error
        return f"[{self.error.type}] {self.error.reason}"


def parse_bulk_response(body: bytes) -> BulkResponse:
    """Parse a bulk response body, mapping validation failures to BulkResponseError."""
    try:
        return BulkResponse.model_validate_json(body)
    except ValidationError as e:
        raise BulkResponseError(f"bulk response failure: could not read the response: {e}") from e
