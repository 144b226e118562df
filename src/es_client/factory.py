from __future__ import annotations

from enum import Enum
from typing import Dict, Type, Union

from .client import ElasticsearchClient, V5Client, V6Client, V7Client, V8Client
from .errors import UnsupportedVersionError


class Version(str, Enum):
    """Supported backend protocol versions."""

    V5 = "5"
    V6 = "6"
    V7 = "7"
    V8 = "8"

    @property
    def has_mapping_types(self) -> bool:
        return self in (Version.V5, Version.V6)


_DIALECTS: Dict[Version, Type[ElasticsearchClient]] = {
    Version.V5: V5Client,
    Version.V6: V6Client,
    Version.V7: V7Client,
    Version.V8: V8Client,
}


def new_client(version: Union[Version, str], config: dict, **kwargs) -> ElasticsearchClient:
    """Create a client speaking the given backend version.

    Raises UnsupportedVersionError for unknown versions; client construction
    errors (missing index, host...) propagate unchanged.
    """
    try:
        v = Version(version)
    except ValueError:
        raise UnsupportedVersionError(f"unsupported version: {version}") from None
    return _DIALECTS[v](config, **kwargs)
