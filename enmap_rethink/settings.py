from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigurationError
from .keys import sanitize_name

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 28015
DEFAULT_DB_NAME = "enmap"
DEFAULT_USER = "admin"
DEFAULT_TIMEOUT = 20


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError("environment value is not an integer", {"var": name, "value": raw}) from e


@dataclass(frozen=True)
class ProviderSettings:
    # Identity
    name: str

    # Server
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    db_name: str = DEFAULT_DB_NAME
    user: str = DEFAULT_USER
    password: str = field(default="", repr=False)
    timeout: int = DEFAULT_TIMEOUT

    # Hydration: True loads every row on init, False fetches keys on demand
    fetch_all: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError("Must provide a provider name")
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "name", sanitize_name(self.name))

        if not isinstance(self.port, int) or isinstance(self.port, bool) or not 0 < self.port < 65536:
            raise ConfigurationError("port must be an integer between 1 and 65535", {"port": self.port})
        if not isinstance(self.timeout, int) or self.timeout <= 0:
            raise ConfigurationError("timeout must be a positive integer", {"timeout": self.timeout})
        if not self.host:
            raise ConfigurationError("host must not be empty")
        if not self.db_name:
            raise ConfigurationError("db_name must not be empty")

    @property
    def table_name(self) -> str:
        return self.name


def get_settings(name: str, **overrides: Any) -> ProviderSettings:
    """
    Build settings for `name`.

    Explicit keyword overrides win over ENMAP_RETHINK_* environment variables,
    which win over the defaults. None overrides are ignored.
    """
    values: dict[str, Any] = {
        "host": os.getenv("ENMAP_RETHINK_HOST", DEFAULT_HOST),
        "port": _env_int("ENMAP_RETHINK_PORT", DEFAULT_PORT),
        "db_name": os.getenv("ENMAP_RETHINK_DB", DEFAULT_DB_NAME),
        "user": os.getenv("ENMAP_RETHINK_USER", DEFAULT_USER),
        "password": os.getenv("ENMAP_RETHINK_PASSWORD", ""),
        "timeout": _env_int("ENMAP_RETHINK_TIMEOUT", DEFAULT_TIMEOUT),
        "fetch_all": _env_bool("ENMAP_RETHINK_FETCH_ALL", True),
    }
    unknown = set(overrides) - set(values)
    if unknown:
        raise ConfigurationError("unknown settings", {"names": sorted(unknown)})
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ProviderSettings(name=name, **values)
