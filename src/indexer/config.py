from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from es_client.client import resolve_cloud_id
from es_client.errors import IndexWriterError
from es_client.factory import Version

# Connector-style configuration keys -> settings fields
CONFIG_KEYS: Dict[str, str] = {
    "version": "version",
    "host": "host",
    "username": "username",
    "password": "password",
    "cloudId": "cloud_id",
    "apiKey": "api_key",
    "serviceToken": "service_token",
    "index": "index",
    "type": "type",
    "bulkSize": "bulk_size",
    "retries": "retries",
}
_FIELD_KEYS = {v: k for k, v in CONFIG_KEYS.items()}

_SECRETS = ("password", "api_key", "service_token")


class ConfigError(IndexWriterError):
    """Invalid or incomplete destination configuration."""

    pass


class Settings(BaseSettings):
    """Destination settings, read from INDEX_WRITER_* env vars or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="INDEX_WRITER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    version: Version
    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    cloud_id: Optional[str] = None
    api_key: Optional[str] = None
    service_token: Optional[str] = None
    index: str
    type: Optional[str] = None
    bulk_size: int = Field(1000, ge=1, le=10_000)
    retries: int = Field(0, ge=0, le=255)
    retry_backoff_ms: int = Field(0, ge=0)
    drop_unsupported_actions: bool = False
    timeout: float = Field(30.0, gt=0)

    @field_validator("host")
    @classmethod
    def _check_host(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(
                f"URI scheme needs to be one of [http, https], {parsed.scheme!r} provided"
            )
        if not parsed.hostname:
            raise ValueError("host is required")
        return v.rstrip("/")

    @field_validator("cloud_id")
    @classmethod
    def _check_cloud_id(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        resolve_cloud_id(v)
        return v

    @field_validator("index")
    @classmethod
    def _check_index(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("index name must not be empty")
        return v

    @model_validator(mode="after")
    def _check_combination(self) -> "Settings":
        if not self.host and not self.cloud_id:
            raise ValueError('"host" config value must be set (or "cloudId")')
        if self.version.has_mapping_types and not self.type:
            raise ValueError(f'"type" config value must be set for version {self.version.value}')
        if self.username and not self.password:
            raise ValueError('"password" config value must be set when "username" is provided')
        return self

    @classmethod
    def from_mapping(cls, raw: Mapping[str, str]) -> "Settings":
        """Build settings from connector-style keys (bulkSize, cloudId...).

        Unknown keys are ignored. Raises ConfigError naming the offending key.
        """
        kwargs = {field: raw[key] for key, field in CONFIG_KEYS.items() if key in raw}
        try:
            return cls(_env_file=None, **kwargs)
        except ValidationError as e:
            raise ConfigError(_describe(e)) from e

    def client_config(self) -> Dict[str, Any]:
        """Keyword config for es_client.new_client()."""
        return {
            "host": self.host,
            "username": self.username,
            "password": self.password,
            "cloud_id": self.cloud_id,
            "api_key": self.api_key,
            "service_token": self.service_token,
            "index": self.index,
            "type": self.type,
            "timeout": self.timeout,
        }

    def masked(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        for name in _SECRETS:
            if data.get(name):
                data[name] = "***"
        return data


def _describe(e: ValidationError) -> str:
    err = e.errors()[0]
    field = err["loc"][0] if err["loc"] else None
    if field is None:
        return err["msg"].removeprefix("Value error, ")
    key = _FIELD_KEYS.get(field, field)
    if err["type"] == "missing":
        return f'"{key}" config value must be set'
    return f'failed to parse "{key}" config value: {err["msg"].removeprefix("Value error, ")}'


@lru_cache()
def get_settings() -> Settings:
    return Settings()
