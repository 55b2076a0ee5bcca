"""
In-memory DatabaseServer / TableStore for development and testing.

Data lives in an InMemoryBackend and is lost when the process exits. Each
connect() hands out a separate connection over the same data, so two providers
sharing one backend behave like two processes sharing one database server.

Every operation yields to the event loop once so concurrent callers interleave
the way they would against a real server.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from .errors import AlreadyExistsError, BackendConnectionError, BackendReadError
from .settings import ProviderSettings

Rows = dict[Any, dict[str, Any]]


class InMemoryBackend:
    def __init__(self) -> None:
        self.databases: dict[str, dict[str, Rows]] = {}

    async def connect(self, settings: ProviderSettings) -> "InMemoryServer":
        return InMemoryServer(self)

    def rows(self, db_name: str, table_name: str) -> Rows:
        try:
            return self.databases[db_name][table_name]
        except KeyError as e:
            raise BackendReadError("table does not exist", {"table": f"{db_name}.{table_name}"}) from e


class InMemoryServer:
    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend
        self.closed = False

    async def _io(self) -> dict[str, dict[str, Rows]]:
        if self.closed:
            raise BackendConnectionError("connection is closed")
        await asyncio.sleep(0)
        return self._backend.databases

    async def db_list(self) -> list[str]:
        return list(await self._io())

    async def db_create(self, db_name: str) -> None:
        dbs = await self._io()
        if db_name in dbs:
            raise AlreadyExistsError(f"Database `{db_name}` already exists.", {"db": db_name})
        dbs[db_name] = {}

    async def table_list(self, db_name: str) -> list[str]:
        return list((await self._io()).get(db_name, {}))

    async def table_create(self, db_name: str, table_name: str) -> None:
        tables = (await self._io()).setdefault(db_name, {})
        if table_name in tables:
            raise AlreadyExistsError(
                f"Table `{db_name}.{table_name}` already exists.", {"db": db_name, "table": table_name}
            )
        tables[table_name] = {}

    def table(self, db_name: str, table_name: str) -> "InMemoryTableStore":
        return InMemoryTableStore(self, db_name, table_name)

    async def close(self) -> None:
        self.closed = True


class InMemoryTableStore:
    """
    Stores deep copies of row documents so callers never share state with the "server".
    """

    def __init__(self, server: InMemoryServer, db_name: str, table_name: str):
        self._server = server
        self.db_name = db_name
        self.table_name = table_name

    async def _rows(self) -> Rows:
        await self._server._io()
        return self._server._backend.rows(self.db_name, self.table_name)

    async def upsert(self, key: Any, payload: Any) -> None:
        rows = await self._rows()
        rows[key] = {"id": key, "data": copy.deepcopy(payload)}

    async def get(self, key: Any) -> dict[str, Any] | None:
        row = (await self._rows()).get(key)
        return copy.deepcopy(row) if row is not None else None

    async def delete(self, key: Any) -> None:
        (await self._rows()).pop(key, None)

    async def delete_all(self) -> int:
        rows = await self._rows()
        count = len(rows)
        rows.clear()
        return count

    async def read_all(self) -> list[dict[str, Any]]:
        return [copy.deepcopy(row) for row in (await self._rows()).values()]

    async def exists(self, key: Any) -> bool:
        return key in await self._rows()
