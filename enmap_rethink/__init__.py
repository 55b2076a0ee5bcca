from __future__ import annotations

from .codec import decode_value, encode_value
from .errors import (
    AlreadyExistsError,
    BackendConnectionError,
    BackendReadError,
    BackendWriteError,
    ClosedProviderError,
    ConfigurationError,
    DecodeError,
    EncodeError,
    InvalidKeyType,
    ProviderError,
    ProviderNotReadyError,
    SchemaEnsureError,
)
from .gateway import NOT_FOUND, WriteThroughGateway
from .keys import sanitize_name, validate_key
from .memory_store import InMemoryBackend
from .provider import RethinkProvider
from .readiness import ReadinessSignal
from .records import ProviderFeatures, RowRecord
from .settings import ProviderSettings, get_settings

__all__ = [
    "RethinkProvider",
    "ProviderSettings",
    "get_settings",
    "ProviderFeatures",
    "RowRecord",
    "ReadinessSignal",
    "WriteThroughGateway",
    "NOT_FOUND",
    "InMemoryBackend",
    "encode_value",
    "decode_value",
    "validate_key",
    "sanitize_name",
    "ProviderError",
    "ConfigurationError",
    "InvalidKeyType",
    "EncodeError",
    "DecodeError",
    "BackendConnectionError",
    "AlreadyExistsError",
    "SchemaEnsureError",
    "BackendWriteError",
    "BackendReadError",
    "ClosedProviderError",
    "ProviderNotReadyError",
]
