from __future__ import annotations

from pathlib import Path
import sys
from typing import Any


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for `import enmap_rethink` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from enmap_rethink.memory_store import InMemoryBackend, InMemoryServer, InMemoryTableStore  # noqa: E402
from enmap_rethink.provider import RethinkProvider  # noqa: E402

ENV_VARS = (
    "ENMAP_RETHINK_HOST",
    "ENMAP_RETHINK_PORT",
    "ENMAP_RETHINK_DB",
    "ENMAP_RETHINK_USER",
    "ENMAP_RETHINK_PASSWORD",
    "ENMAP_RETHINK_TIMEOUT",
    "ENMAP_RETHINK_FETCH_ALL",
)


class RecordingTableStore(InMemoryTableStore):
    """In-memory table that logs every backend call into `calls`."""

    def __init__(self, server: InMemoryServer, db_name: str, table_name: str, calls: list[tuple]):
        super().__init__(server, db_name, table_name)
        self.calls = calls

    async def upsert(self, key: Any, payload: Any) -> None:
        self.calls.append(("upsert", key))
        await super().upsert(key, payload)

    async def get(self, key: Any):
        self.calls.append(("get", key))
        return await super().get(key)

    async def delete(self, key: Any) -> None:
        self.calls.append(("delete", key))
        await super().delete(key)

    async def delete_all(self) -> int:
        self.calls.append(("delete_all",))
        return await super().delete_all()

    async def read_all(self):
        self.calls.append(("read_all",))
        return await super().read_all()

    async def exists(self, key: Any) -> bool:
        self.calls.append(("exists", key))
        return await super().exists(key)


class RecordingServer(InMemoryServer):
    def __init__(self, backend: "RecordingBackend") -> None:
        super().__init__(backend)
        self.calls = backend.calls

    async def db_list(self) -> list[str]:
        self.calls.append(("db_list",))
        return await super().db_list()

    async def db_create(self, db_name: str) -> None:
        self.calls.append(("db_create", db_name))
        await super().db_create(db_name)

    async def table_list(self, db_name: str) -> list[str]:
        self.calls.append(("table_list", db_name))
        return await super().table_list(db_name)

    async def table_create(self, db_name: str, table_name: str) -> None:
        self.calls.append(("table_create", db_name, table_name))
        await super().table_create(db_name, table_name)

    def table(self, db_name: str, table_name: str) -> RecordingTableStore:
        return RecordingTableStore(self, db_name, table_name, self.calls)

    async def close(self) -> None:
        self.calls.append(("close",))
        await super().close()


class RecordingBackend(InMemoryBackend):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple] = []

    async def connect(self, settings) -> RecordingServer:
        self.calls.append(("connect", settings.host, settings.port))
        return RecordingServer(self)

    def seed(self, db_name: str, table_name: str, rows: dict[Any, Any]) -> None:
        """Pre-populate a table with raw stored payloads."""
        table = self.databases.setdefault(db_name, {}).setdefault(table_name, {})
        for key, data in rows.items():
            table[key] = {"id": key, "data": data}


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """
    Remove ENMAP_RETHINK_* variables for the test and restore them afterwards,
    including any values set behind monkeypatch's back (e.g. by load_dotenv).
    """
    for var in ENV_VARS:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    return monkeypatch


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def make_provider(backend: RecordingBackend):
    """
    Factory for providers wired to the recording in-memory backend.
    """

    def _make(name: str = "cache", **kwargs: Any) -> RethinkProvider:
        kwargs.setdefault("connector", backend.connect)
        return RethinkProvider(name, **kwargs)

    return _make
