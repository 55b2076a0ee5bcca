"""
Exception hierarchy for the provider.

Every error carries an optional structured context so that callers (and the
background write logger) can report what key / table was involved.
"""

from __future__ import annotations

from typing import Any


class ProviderError(Exception):
    """Root of every error raised by this package.

    `context` names the key, table or setting involved. It is folded into the
    message so that log lines written for failed background writes stand on
    their own.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = dict(context or {})
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.context:
            return self.message
        details = " ".join(f"{k}={v!r}" for k, v in sorted(self.context.items()))
        return f"{self.message} [{details}]"


class ConfigurationError(ProviderError):
    """Raised by the constructor when settings are missing or invalid."""


class InvalidKeyType(ProviderError, TypeError):
    """Raised when a key is empty or not a string/number.

    Always raised before any backend call is attempted.
    """


class EncodeError(ProviderError, ValueError):
    """Raised when a value cannot be encoded for storage."""


class DecodeError(ProviderError, ValueError):
    """Raised when a stored row or payload cannot be decoded.

    Context should include:
        - key: The row id, when known
        - payload: A prefix of the offending payload
    """


class BackendConnectionError(ProviderError, ConnectionError):
    """Raised when the backend is unreachable or rejects authentication."""


class AlreadyExistsError(ProviderError):
    """Raised by backends when a database or table being created already exists."""


class SchemaEnsureError(ProviderError):
    """Raised when creating the database or table fails for any other reason."""


class BackendWriteError(ProviderError):
    """Raised when an upsert, delete or clear fails after validation passed."""


class BackendReadError(ProviderError):
    """Raised when a get, exists or full-table read fails."""


class ClosedProviderError(ProviderError):
    """Raised for any operation attempted after close()."""


class ProviderNotReadyError(ProviderError):
    """Raised for operations attempted before init() completed."""
